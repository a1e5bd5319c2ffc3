"""AWS integration library for OrgSweep."""

from .adapter import Boto3IdentityAdapter, IdentityAdapter

__all__ = [
    "Boto3IdentityAdapter",
    "IdentityAdapter"
]
