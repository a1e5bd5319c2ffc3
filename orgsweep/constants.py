"""
Constants module for role names, worker names and catalog metadata.
"""

from typing import Dict, List, Optional

from .enums import AccountTier, RemediationAction, ResourceType

# Role provisioned in every member account by AWS Organizations
DEFAULT_ROLE_NAME = "OrganizationAccountAccessRole"
DEFAULT_ROLE_SESSION_NAME = "OrgSweepCrawlSession"
DEFAULT_ROLE_DURATION_SECONDS = 900

# Organizations is a global service homed in us-east-1
DEFAULT_REGION = "us-east-1"

# Maximum in-flight enrichment calls per account crawl
DEFAULT_FAN_OUT_WIDTH = 5

DEFAULT_STATE_DIR = "orgsweep_state"

# Name under which the IAM worker reports progress for an account
IAM_WORKER_NAME = "AccountIamWorker"

# Account ID recorded on errors that are not tied to a member account
ROOT_SCOPE_ACCOUNT_ID = "root"

# Label of the synthetic root identity appended to each account's users
ROOT_IDENTITY_NAME = "<root_account>"

# AWS ARN format: arn:partition:service:region:account-id:resource
ARN_ACCOUNT_ID_INDEX = 4

NOT_STARTED_STATEMENT = "Not started."

# None means unlimited
TIER_ACCOUNT_QUOTAS: Dict[AccountTier, Optional[int]] = {
    AccountTier.FREE: 3,
    AccountTier.STARTUP: 20,
    AccountTier.PRO: None,
}

RESOURCE_TYPE_DESCRIPTORS: Dict[str, Dict[str, object]] = {
    ResourceType.ORGANIZATION_ACCOUNT.value: {
        "label": "Organization Account",
        "actions": [],
    },
    ResourceType.IAM_USER.value: {
        "label": "IAM User",
        "actions": [
            {"label": "Delete", "action": RemediationAction.DELETE_USER.value},
            {"label": "Delete unused access keys", "action": RemediationAction.DELETE_UNUSED_ACCESS_KEYS.value},
        ],
    },
    ResourceType.IAM_GROUP.value: {
        "label": "IAM Group",
        "actions": [],
    },
    ResourceType.IAM_ROLE.value: {
        "label": "IAM Role",
        "actions": [],
    },
}

QUERY_EXAMPLES: List[Dict[str, str]] = [
    {
        "description": "Find all IAM users without MFA enabled",
        "query": "$[resource_type = 'AWS::IAM::User' and $count(config.mfaDevices) = 0]",
    },
    {
        "description": "Find all IAM users with MFA enabled",
        "query": "$[resource_type = 'AWS::IAM::User' and $count(config.mfaDevices) > 0]",
    },
    {
        "description": "Find all IAM users with 'mike' in their names",
        "query": "$[resource_type = 'AWS::IAM::User' and $contains(config.UserName, 'mike')]",
    },
    {
        "description": "Find all IAM users with AdministratorAccess attached and no MFA devices",
        "query": (
            "$[resource_type = 'AWS::IAM::User' and $count(config.mfaDevices) = 0 "
            "and config.AttachedManagedPolicies[PolicyName = 'AdministratorAccess']]"
        ),
    },
]
