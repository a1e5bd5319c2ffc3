"""
Account crawl worker.

A worker owns the identity inventory of exactly one account for one crawl.
It never touches crawl session state: it receives tasks from the scheduler
and answers with WorkerEvent messages addressed to the orchestrator.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, TypeVar

from .aws.adapter import PROVIDER_ERRORS, IdentityAdapter
from .constants import DEFAULT_FAN_OUT_WIDTH, IAM_WORKER_NAME, ROOT_IDENTITY_NAME
from .enums import WorkStatus
from .normalize import normalize_inventory
from .types import CrawlAccount, IdentityInventory, RawEntity, RoleCredentials, StartWorker, Task, WorkerEvent
from .utils import chunked

# Set up logging
logger = logging.getLogger(__name__)

T = TypeVar("T")


def _root_arn(account_id: str) -> str:
    return f"arn:aws:iam::{account_id}:root"


def _group_mfa_devices_by_identity(devices: List[RawEntity]) -> Dict[str, List[RawEntity]]:
    """Index MFA devices by the ARN of the identity they are bound to."""
    by_arn: Dict[str, List[RawEntity]] = {}
    for device in devices:
        arn = (device.get("User") or {}).get("Arn")
        if arn:
            by_arn.setdefault(arn, []).append(device)
    return by_arn


class AccountCrawlWorker:
    """
    Crawls one account's IAM users, groups and roles.

    Enrichment calls (access keys and their last use) run in batches of
    ``fan_out_width`` users; each batch completes before the next starts, so
    at most ``fan_out_width`` detail calls are in flight at any time.
    """

    name = IAM_WORKER_NAME

    def __init__(self, adapter: IdentityAdapter, fan_out_width: int = DEFAULT_FAN_OUT_WIDTH) -> None:
        self.adapter = adapter
        self.fan_out_width = fan_out_width

    def start(self, task: StartWorker) -> List[Task]:
        """
        Report the account as running, then continue with the crawl.

        The running event is queued ahead of the crawl so progress reflects
        the in-flight account before its data is ready.
        """
        logger.info(f"Worker starting crawl of account {task.account_id}")
        running = WorkerEvent(
            tenant_id=task.tenant_id,
            account_id=task.account_id,
            worker_name=self.name,
            status=WorkStatus.RUNNING,
        )
        crawl = CrawlAccount(tenant_id=task.tenant_id, account_id=task.account_id, credentials=task.credentials)
        return [running, crawl]

    def crawl(self, task: CrawlAccount) -> List[Task]:
        """
        Crawl and normalize the account, reporting the result as a finished event.

        Any failure, including a single failed enrichment call, fails the whole
        account; the event then carries the error message and no records.
        """
        try:
            inventory = self.collect_inventory(task.account_id, task.credentials)
        except Exception as e:
            logger.error(f"Crawl of account {task.account_id} failed: {e}", exc_info=True)
            return [WorkerEvent(
                tenant_id=task.tenant_id,
                account_id=task.account_id,
                worker_name=self.name,
                status=WorkStatus.FINISHED,
                error=str(e),
            )]

        records = normalize_inventory(inventory, task.account_id)
        logger.info(
            f"Worker finished account {task.account_id}: "
            f"{len(inventory.users)} users, {len(inventory.groups)} groups, {len(inventory.roles)} roles"
        )
        return [WorkerEvent(
            tenant_id=task.tenant_id,
            account_id=task.account_id,
            worker_name=self.name,
            status=WorkStatus.FINISHED,
            data=records,
        )]

    def collect_inventory(self, account_id: str, credentials: RoleCredentials) -> IdentityInventory:
        """
        Paginate identity entities and enrich every user.

        Args:
            account_id: Account being crawled
            credentials: Role credentials for the account

        Returns:
            IdentityInventory with users enriched with mfaDevices and accessKeys

        Raises:
            ClientError: If listing or any enrichment call fails
        """
        mfa_by_arn = _group_mfa_devices_by_identity(self.adapter.get_mfa_devices(credentials))
        inventory = IdentityInventory()

        with ThreadPoolExecutor(max_workers=self.fan_out_width) as executor:
            for page_number, page in enumerate(self.adapter.list_identity_entities(credentials), start=1):
                batches = list(chunked(page.users, self.fan_out_width))
                logger.debug(
                    f"Account {account_id} page {page_number}: "
                    f"{len(page.users)} users in {len(batches)} batches"
                )
                for batch in batches:
                    futures = [
                        executor.submit(self._enrich_user, credentials, user, mfa_by_arn)
                        for user in batch
                    ]
                    inventory.users.extend(future.result() for future in futures)
                inventory.groups.extend(page.groups)
                inventory.roles.extend(page.roles)

        root_arn = _root_arn(account_id)
        if not any(user.get("Arn") == root_arn for user in inventory.users):
            inventory.users.append({
                "UserName": ROOT_IDENTITY_NAME,
                "UserId": account_id,
                "Arn": root_arn,
                "Path": "/",
                "mfaDevices": mfa_by_arn.get(root_arn, []),
                "accessKeys": [],
            })
        return inventory

    def _enrich_user(
        self,
        credentials: RoleCredentials,
        user: RawEntity,
        mfa_by_arn: Dict[str, List[RawEntity]]
    ) -> RawEntity:
        access_keys = []
        for key in self.adapter.get_access_keys(credentials, user["UserName"]):
            access_keys.append({
                **key,
                "LastUsedDate": self.adapter.get_access_key_last_used(credentials, key["AccessKeyId"]),
            })
        # Hardware and FIDO devices only show up in the per-user listing
        mfa_devices = list(mfa_by_arn.get(user.get("Arn", ""), []))
        serials = {device.get("SerialNumber") for device in mfa_devices}
        for device in self.adapter.get_user_mfa_devices(credentials, user["UserName"]):
            if device.get("SerialNumber") not in serials:
                mfa_devices.append(device)
                serials.add(device.get("SerialNumber"))
        return {
            **user,
            "mfaDevices": mfa_devices,
            "accessKeys": access_keys,
        }

    def _best_effort(self, description: str, call: Callable[..., T], *args: object) -> Optional[T]:
        try:
            return call(*args)
        except PROVIDER_ERRORS as e:
            logger.warning(f"{description} failed, continuing: {e}")
            return None

    def delete_user(self, account_id: str, credentials: RoleCredentials, user_name: str) -> None:
        """
        Delete an IAM user after tearing down everything attached to it.

        Every sub-step is best effort: a user legitimately missing a login
        profile or keys must not stop cleanup of the rest. Only the final
        DeleteUser call may fail the operation.

        Raises:
            ClientError: If the user itself cannot be deleted
        """
        logger.info(f"Deleting IAM user {user_name} in account {account_id}")
        adapter = self.adapter

        self._best_effort(f"Deleting login profile of {user_name}", adapter.delete_login_profile, credentials, user_name)

        for key in self._best_effort(f"Listing access keys of {user_name}", adapter.get_access_keys, credentials, user_name) or []:
            self._best_effort(
                f"Deleting access key {key['AccessKeyId']}",
                adapter.delete_access_key, credentials, user_name, key["AccessKeyId"]
            )

        for policy_arn in self._best_effort(f"Listing attached policies of {user_name}", adapter.list_attached_policy_arns, credentials, user_name) or []:
            self._best_effort(f"Detaching {policy_arn}", adapter.detach_user_policy, credentials, user_name, policy_arn)

        for group_name in self._best_effort(f"Listing groups of {user_name}", adapter.list_group_names, credentials, user_name) or []:
            self._best_effort(f"Removing {user_name} from {group_name}", adapter.remove_user_from_group, credentials, user_name, group_name)

        for certificate_id in self._best_effort(f"Listing signing certificates of {user_name}", adapter.list_signing_certificate_ids, credentials, user_name) or []:
            self._best_effort(
                f"Deleting signing certificate {certificate_id}",
                adapter.delete_signing_certificate, credentials, user_name, certificate_id
            )

        for key_id in self._best_effort(f"Listing SSH public keys of {user_name}", adapter.list_ssh_public_key_ids, credentials, user_name) or []:
            self._best_effort(f"Deleting SSH public key {key_id}", adapter.delete_ssh_public_key, credentials, user_name, key_id)

        for serial in self._best_effort(f"Listing MFA devices of {user_name}", adapter.list_mfa_device_serials, credentials, user_name) or []:
            self._best_effort(f"Deactivating MFA device {serial}", adapter.deactivate_mfa_device, credentials, user_name, serial)

        adapter.delete_user(credentials, user_name)

    def delete_unused_access_keys(self, account_id: str, credentials: RoleCredentials, user_name: str) -> List[str]:
        """
        Delete the user's access keys that have never been used.

        A key whose deletion fails (for example because it was removed
        concurrently) is skipped without failing the operation.

        Returns:
            IDs of the keys that were deleted
        """
        deleted: List[str] = []
        for key in self.adapter.get_access_keys(credentials, user_name):
            key_id = key["AccessKeyId"]
            try:
                last_used = self.adapter.get_access_key_last_used(credentials, key_id)
            except PROVIDER_ERRORS as e:
                logger.warning(f"Could not read last use of access key {key_id}, keeping it: {e}")
                continue
            if last_used is not None:
                continue
            try:
                self.adapter.delete_access_key(credentials, user_name, key_id)
            except PROVIDER_ERRORS as e:
                logger.warning(f"Deleting unused access key {key_id} failed, skipping: {e}")
                continue
            deleted.append(key_id)
        logger.info(f"Deleted {len(deleted)} unused access keys of {user_name} in account {account_id}")
        return deleted
