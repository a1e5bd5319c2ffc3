"""
Resource normalization.

Pure mapping from raw provider documents to catalog records. No I/O, and
missing optional fields become empty collections rather than errors.
"""

import json
from typing import Any, Dict, List, Optional

from .catalog import (
    CatalogRecord,
    IamGroupConfig,
    IamGroupRecord,
    IamRoleConfig,
    IamRoleRecord,
    IamUserConfig,
    IamUserRecord,
    OrganizationAccountConfig,
    OrganizationAccountRecord,
)
from .constants import ARN_ACCOUNT_ID_INDEX
from .types import IdentityInventory, OrganizationAccount, RawEntity

# Dropped from role records: trust policy and full inline policy documents
ROLE_STRIPPED_FIELDS = frozenset({"AssumeRolePolicyDocument", "RolePolicyList"})


def _json_safe(document: Dict[str, Any]) -> Dict[str, Any]:
    """Convert datetimes and other non-JSON values to strings."""
    return json.loads(json.dumps(document, default=str))


def _account_id(arn: str, fallback: str) -> str:
    parts = arn.split(":")
    if len(parts) > ARN_ACCOUNT_ID_INDEX and parts[ARN_ACCOUNT_ID_INDEX]:
        return parts[ARN_ACCOUNT_ID_INDEX]
    return fallback


def _policy_names(policies: Optional[List[RawEntity]]) -> List[Dict[str, str]]:
    return [{"PolicyName": policy.get("PolicyName", "")} for policy in policies or []]


def normalize_user(user: RawEntity, account_id: str = "") -> IamUserRecord:
    """
    Normalize an IAM user.

    Inline policies keep only their names; the full documents are dropped
    to bound the size of stored records.
    """
    config = _json_safe({key: value for key, value in user.items() if key != "UserPolicyList"})
    for key in ("GroupList", "AttachedManagedPolicies", "Tags", "mfaDevices", "accessKeys"):
        config[key] = config.get(key) or []
    config["UserPolicyList"] = _policy_names(user.get("UserPolicyList"))

    arn = user.get("Arn", "")
    return IamUserRecord(
        arn=arn,
        label=user.get("UserName", ""),
        account_id=_account_id(arn, account_id),
        config=IamUserConfig(**config),
    )


def normalize_group(group: RawEntity, account_id: str = "") -> IamGroupRecord:
    config = _json_safe(group)
    for key in ("GroupPolicyList", "AttachedManagedPolicies"):
        config[key] = config.get(key) or []

    arn = group.get("Arn", "")
    return IamGroupRecord(
        arn=arn,
        label=group.get("GroupName", ""),
        account_id=_account_id(arn, account_id),
        config=IamGroupConfig(**config),
    )


def normalize_role(role: RawEntity, account_id: str = "") -> IamRoleRecord:
    """Normalize an IAM role, stripping its trust policy and inline policies."""
    config = _json_safe({key: value for key, value in role.items() if key not in ROLE_STRIPPED_FIELDS})
    for key in ("AttachedManagedPolicies", "Tags"):
        config[key] = config.get(key) or []

    arn = role.get("Arn", "")
    return IamRoleRecord(
        arn=arn,
        label=role.get("RoleName", ""),
        account_id=_account_id(arn, account_id),
        config=IamRoleConfig(**config),
    )


def normalize_account(account: OrganizationAccount) -> OrganizationAccountRecord:
    return OrganizationAccountRecord(
        arn=account.arn,
        label=account.email,
        account_id=account.account_id,
        account_email=account.email,
        config=OrganizationAccountConfig(
            accountId=account.account_id,
            arn=account.arn,
            accountName=account.name,
            email=account.email,
        ),
    )


def normalize_inventory(inventory: IdentityInventory, account_id: str = "") -> List[CatalogRecord]:
    """Normalize a whole account inventory: users, then groups, then roles."""
    records: List[CatalogRecord] = []
    records.extend(normalize_user(user, account_id) for user in inventory.users)
    records.extend(normalize_group(group, account_id) for group in inventory.groups)
    records.extend(normalize_role(role, account_id) for role in inventory.roles)
    return records
