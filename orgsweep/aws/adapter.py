"""
Cloud identity adapter.

The orchestrator and worker talk to AWS only through an object satisfying
``IdentityAdapter``. ``Boto3IdentityAdapter`` is the production
implementation; tests substitute a scripted fake. Retries and pagination are
the adapter's concern: each method either returns a complete result (or
page stream) or raises.
"""

import logging
from datetime import datetime
from typing import Iterator, List, Optional, Protocol

from botocore.exceptions import BotoCoreError, ClientError
from mypy_boto3_iam.client import IAMClient

from ..constants import DEFAULT_REGION, DEFAULT_ROLE_DURATION_SECONDS, DEFAULT_ROLE_SESSION_NAME
from ..state import OrganizationCredentials
from ..types import IdentityPage, OrganizationAccount, RawEntity, RoleCredentials
from . import iam
from .organization import list_organization_accounts
from .sessions import assume_role, organization_session, role_arn_for_account, session_from_role_credentials

logger = logging.getLogger(__name__)

# Failures a provider call can raise
PROVIDER_ERRORS = (ClientError, BotoCoreError)


class IdentityAdapter(Protocol):
    """Provider operations consumed by the crawl orchestrator and worker."""

    def list_organization_accounts(self, credentials: OrganizationCredentials) -> Iterator[List[OrganizationAccount]]: ...

    def assume_role(self, credentials: OrganizationCredentials, account_id: str, role_name: str) -> RoleCredentials: ...

    def list_identity_entities(self, credentials: RoleCredentials) -> Iterator[IdentityPage]: ...

    def get_mfa_devices(self, credentials: RoleCredentials) -> List[RawEntity]: ...

    def get_user_mfa_devices(self, credentials: RoleCredentials, user_name: str) -> List[RawEntity]: ...

    def get_access_keys(self, credentials: RoleCredentials, user_name: str) -> List[RawEntity]: ...

    def get_access_key_last_used(self, credentials: RoleCredentials, access_key_id: str) -> Optional[datetime]: ...

    def delete_login_profile(self, credentials: RoleCredentials, user_name: str) -> None: ...

    def delete_access_key(self, credentials: RoleCredentials, user_name: str, access_key_id: str) -> None: ...

    def list_attached_policy_arns(self, credentials: RoleCredentials, user_name: str) -> List[str]: ...

    def detach_user_policy(self, credentials: RoleCredentials, user_name: str, policy_arn: str) -> None: ...

    def list_group_names(self, credentials: RoleCredentials, user_name: str) -> List[str]: ...

    def remove_user_from_group(self, credentials: RoleCredentials, user_name: str, group_name: str) -> None: ...

    def list_signing_certificate_ids(self, credentials: RoleCredentials, user_name: str) -> List[str]: ...

    def delete_signing_certificate(self, credentials: RoleCredentials, user_name: str, certificate_id: str) -> None: ...

    def list_ssh_public_key_ids(self, credentials: RoleCredentials, user_name: str) -> List[str]: ...

    def delete_ssh_public_key(self, credentials: RoleCredentials, user_name: str, ssh_public_key_id: str) -> None: ...

    def list_mfa_device_serials(self, credentials: RoleCredentials, user_name: str) -> List[str]: ...

    def deactivate_mfa_device(self, credentials: RoleCredentials, user_name: str, serial_number: str) -> None: ...

    def delete_user(self, credentials: RoleCredentials, user_name: str) -> None: ...


class Boto3IdentityAdapter:
    """IdentityAdapter backed by boto3 sessions built per call."""

    def __init__(
        self,
        region: str = DEFAULT_REGION,
        role_session_name: str = DEFAULT_ROLE_SESSION_NAME,
        role_duration_seconds: int = DEFAULT_ROLE_DURATION_SECONDS,
    ) -> None:
        self.region = region
        self.role_session_name = role_session_name
        self.role_duration_seconds = role_duration_seconds

    def _iam(self, credentials: RoleCredentials) -> IAMClient:
        # A fresh session per call keeps enrichment threads from sharing one
        return session_from_role_credentials(credentials, self.region).client("iam")

    def list_organization_accounts(self, credentials: OrganizationCredentials) -> Iterator[List[OrganizationAccount]]:
        session = organization_session(credentials.access_key_id, credentials.secret_access_key, self.region)
        return list_organization_accounts(session)

    def assume_role(self, credentials: OrganizationCredentials, account_id: str, role_name: str) -> RoleCredentials:
        session = organization_session(credentials.access_key_id, credentials.secret_access_key, self.region)
        role_arn = role_arn_for_account(account_id, role_name)
        logger.debug(f"Assuming {role_arn}")
        return assume_role(role_arn, self.role_session_name, session, self.role_duration_seconds)

    def list_identity_entities(self, credentials: RoleCredentials) -> Iterator[IdentityPage]:
        return iam.iter_authorization_details(self._iam(credentials))

    def get_mfa_devices(self, credentials: RoleCredentials) -> List[RawEntity]:
        return iam.list_assigned_virtual_mfa_devices(self._iam(credentials))

    def get_user_mfa_devices(self, credentials: RoleCredentials, user_name: str) -> List[RawEntity]:
        return iam.list_user_mfa_devices(self._iam(credentials), user_name)

    def get_access_keys(self, credentials: RoleCredentials, user_name: str) -> List[RawEntity]:
        return iam.list_access_keys(self._iam(credentials), user_name)

    def get_access_key_last_used(self, credentials: RoleCredentials, access_key_id: str) -> Optional[datetime]:
        return iam.get_access_key_last_used(self._iam(credentials), access_key_id)

    def delete_login_profile(self, credentials: RoleCredentials, user_name: str) -> None:
        iam.delete_login_profile(self._iam(credentials), user_name)

    def delete_access_key(self, credentials: RoleCredentials, user_name: str, access_key_id: str) -> None:
        iam.delete_access_key(self._iam(credentials), user_name, access_key_id)

    def list_attached_policy_arns(self, credentials: RoleCredentials, user_name: str) -> List[str]:
        return iam.list_attached_user_policy_arns(self._iam(credentials), user_name)

    def detach_user_policy(self, credentials: RoleCredentials, user_name: str, policy_arn: str) -> None:
        iam.detach_user_policy(self._iam(credentials), user_name, policy_arn)

    def list_group_names(self, credentials: RoleCredentials, user_name: str) -> List[str]:
        return iam.list_group_names_for_user(self._iam(credentials), user_name)

    def remove_user_from_group(self, credentials: RoleCredentials, user_name: str, group_name: str) -> None:
        iam.remove_user_from_group(self._iam(credentials), user_name, group_name)

    def list_signing_certificate_ids(self, credentials: RoleCredentials, user_name: str) -> List[str]:
        return iam.list_signing_certificate_ids(self._iam(credentials), user_name)

    def delete_signing_certificate(self, credentials: RoleCredentials, user_name: str, certificate_id: str) -> None:
        iam.delete_signing_certificate(self._iam(credentials), user_name, certificate_id)

    def list_ssh_public_key_ids(self, credentials: RoleCredentials, user_name: str) -> List[str]:
        return iam.list_ssh_public_key_ids(self._iam(credentials), user_name)

    def delete_ssh_public_key(self, credentials: RoleCredentials, user_name: str, ssh_public_key_id: str) -> None:
        iam.delete_ssh_public_key(self._iam(credentials), user_name, ssh_public_key_id)

    def list_mfa_device_serials(self, credentials: RoleCredentials, user_name: str) -> List[str]:
        return iam.list_mfa_device_serials(self._iam(credentials), user_name)

    def deactivate_mfa_device(self, credentials: RoleCredentials, user_name: str, serial_number: str) -> None:
        iam.deactivate_mfa_device(self._iam(credentials), user_name, serial_number)

    def delete_user(self, credentials: RoleCredentials, user_name: str) -> None:
        iam.delete_user(self._iam(credentials), user_name)
