"""
Enumerations for OrgSweep.

This module contains all enum types used throughout the application
to replace magic strings and improve type safety.
"""

from enum import Enum


class SessionStatus(str, Enum):
    """Lifecycle of a tenant's crawl session."""
    IDLE = "idle"
    RUNNING = "running"


class WorkStatus(str, Enum):
    """Progress of one account (or one worker within an account)."""
    NOT_STARTED = "not_started"
    RUNNING = "running"
    FINISHED = "finished"


class ResourceType(str, Enum):
    """Discriminant of a catalog record."""
    ORGANIZATION_ACCOUNT = "AWS::Organizations::Account"
    IAM_USER = "AWS::IAM::User"
    IAM_GROUP = "AWS::IAM::Group"
    IAM_ROLE = "AWS::IAM::Role"


class RemediationAction(str, Enum):
    """Remediation commands accepted by handle_action."""
    DELETE_USER = "deleteUser"
    DELETE_UNUSED_ACCESS_KEYS = "deleteUnusedAccessKeys"


class AccountTier(str, Enum):
    """Subscription tiers that bound how many accounts a crawl may cover."""
    FREE = "free"
    STARTUP = "startup"
    PRO = "pro"
