"""
AWS IAM identity enumeration and teardown primitives.

Each function takes an IAM client for the target account and performs one
provider call (following pagination where the API paginates). Errors are
not handled here; callers decide which failures are fatal.
"""

import logging
from datetime import datetime
from typing import Iterator, List, Optional

from mypy_boto3_iam.client import IAMClient

from ..types import IdentityPage, RawEntity
from .helpers import collect_items, paginate

# Set up logging
logger = logging.getLogger(__name__)

AUTHORIZATION_DETAILS_FILTER = ["User", "Group", "Role"]


def iter_authorization_details(iam_client: IAMClient) -> Iterator[IdentityPage]:
    """
    Yield users, groups and roles one API page at a time.

    Args:
        iam_client: IAM client for the target account

    Yields:
        IdentityPage per GetAccountAuthorizationDetails page, in provider order
    """
    for page in paginate(iam_client, "get_account_authorization_details", Filter=AUTHORIZATION_DETAILS_FILTER):
        yield IdentityPage(
            users=list(page.get("UserDetailList", [])),
            groups=list(page.get("GroupDetailList", [])),
            roles=list(page.get("RoleDetailList", [])),
        )


def list_assigned_virtual_mfa_devices(iam_client: IAMClient) -> List[RawEntity]:
    """
    List every virtual MFA device in the account that is bound to an identity.

    The bound identity (including the account root) is reported under the
    device's ``User`` key. Hardware and FIDO devices are not virtual and
    never appear here; see ``list_user_mfa_devices``.
    """
    return collect_items(iam_client, "list_virtual_mfa_devices", "VirtualMFADevices", AssignmentStatus="Assigned")


def list_access_keys(iam_client: IAMClient, user_name: str) -> List[RawEntity]:
    return collect_items(iam_client, "list_access_keys", "AccessKeyMetadata", UserName=user_name)


def get_access_key_last_used(iam_client: IAMClient, access_key_id: str) -> Optional[datetime]:
    """Return when the key was last used, or None if it never was."""
    resp = iam_client.get_access_key_last_used(AccessKeyId=access_key_id)
    return resp.get("AccessKeyLastUsed", {}).get("LastUsedDate")


def delete_login_profile(iam_client: IAMClient, user_name: str) -> None:
    iam_client.delete_login_profile(UserName=user_name)


def delete_access_key(iam_client: IAMClient, user_name: str, access_key_id: str) -> None:
    iam_client.delete_access_key(UserName=user_name, AccessKeyId=access_key_id)


def list_attached_user_policy_arns(iam_client: IAMClient, user_name: str) -> List[str]:
    policies = collect_items(iam_client, "list_attached_user_policies", "AttachedPolicies", UserName=user_name)
    return [policy["PolicyArn"] for policy in policies]


def detach_user_policy(iam_client: IAMClient, user_name: str, policy_arn: str) -> None:
    iam_client.detach_user_policy(UserName=user_name, PolicyArn=policy_arn)


def list_group_names_for_user(iam_client: IAMClient, user_name: str) -> List[str]:
    return [group["GroupName"] for group in collect_items(iam_client, "list_groups_for_user", "Groups", UserName=user_name)]


def remove_user_from_group(iam_client: IAMClient, user_name: str, group_name: str) -> None:
    iam_client.remove_user_from_group(UserName=user_name, GroupName=group_name)


def list_signing_certificate_ids(iam_client: IAMClient, user_name: str) -> List[str]:
    certificates = collect_items(iam_client, "list_signing_certificates", "Certificates", UserName=user_name)
    return [cert["CertificateId"] for cert in certificates]


def delete_signing_certificate(iam_client: IAMClient, user_name: str, certificate_id: str) -> None:
    iam_client.delete_signing_certificate(UserName=user_name, CertificateId=certificate_id)


def list_ssh_public_key_ids(iam_client: IAMClient, user_name: str) -> List[str]:
    keys = collect_items(iam_client, "list_ssh_public_keys", "SSHPublicKeys", UserName=user_name)
    return [key["SSHPublicKeyId"] for key in keys]


def delete_ssh_public_key(iam_client: IAMClient, user_name: str, ssh_public_key_id: str) -> None:
    iam_client.delete_ssh_public_key(UserName=user_name, SSHPublicKeyId=ssh_public_key_id)


def list_user_mfa_devices(iam_client: IAMClient, user_name: str) -> List[RawEntity]:
    """List every MFA device enabled for a user, hardware and FIDO keys included."""
    return collect_items(iam_client, "list_mfa_devices", "MFADevices", UserName=user_name)


def list_mfa_device_serials(iam_client: IAMClient, user_name: str) -> List[str]:
    return [device["SerialNumber"] for device in list_user_mfa_devices(iam_client, user_name)]


def deactivate_mfa_device(iam_client: IAMClient, user_name: str, serial_number: str) -> None:
    iam_client.deactivate_mfa_device(UserName=user_name, SerialNumber=serial_number)


def delete_user(iam_client: IAMClient, user_name: str) -> None:
    iam_client.delete_user(UserName=user_name)
    logger.info(f"Deleted IAM user {user_name}")
