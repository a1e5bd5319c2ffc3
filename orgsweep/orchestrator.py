"""
Fleet crawl orchestrator.

The orchestrator is a state machine over one tenant's ``CrawlSession``.
Each public method is one step: it receives the tenant state, mutates it,
and returns the tasks that continue the crawl. It holds no session state
of its own; persisting the state between steps is the caller's job.

Accounts are crawled strictly one at a time, in the order the organization
lists them. An account whose role cannot be assumed, or whose worker fails,
is finished with an error and the crawl moves on.
"""

import logging
from typing import Any, Dict, List, Optional

from .aws.adapter import PROVIDER_ERRORS, IdentityAdapter
from .catalog import IamUserRecord
from .constants import DEFAULT_ROLE_NAME, ROOT_SCOPE_ACCOUNT_ID
from .enums import RemediationAction, SessionStatus, WorkStatus
from .exceptions import ConflictError, CredentialsNotSetError, TierResolutionError, UnknownActionError
from .normalize import normalize_account
from .state import AccountWork, CrawlError, CrawlSession, Progress, TenantState
from .tiers import TierResolver
from .types import DispatchNext, OrganizationAccount, StartWorker, Task, WorkerEvent
from .utils import account_id_from_arn, format_account_identifier
from .worker import AccountCrawlWorker

# Set up logging
logger = logging.getLogger(__name__)


def _count_finished(session: CrawlSession) -> int:
    return sum(1 for account in session.accounts if account.work_status == WorkStatus.FINISHED)


def _count_failed(session: CrawlSession) -> int:
    return sum(1 for account in session.accounts if account.error_message)


class FleetOrchestrator:
    """Sequences per-account crawls for a tenant and aggregates their results."""

    def __init__(
        self,
        adapter: IdentityAdapter,
        tier_resolver: TierResolver,
        worker: AccountCrawlWorker,
        role_name: str = DEFAULT_ROLE_NAME,
    ) -> None:
        self.adapter = adapter
        self.tier_resolver = tier_resolver
        self.worker = worker
        self.role_name = role_name

    def start(self, state: TenantState) -> List[Task]:
        """
        Begin a new crawl, replacing the accounts, catalog and errors of any previous one.

        If the organization cannot be listed, a root-scoped error is recorded
        and the session stays running with no accounts until it is cleared.

        Raises:
            ConflictError: If a crawl is already running (state is left untouched)
            CredentialsNotSetError: If no organization credentials are set
        """
        session = state.session
        if session.status == SessionStatus.RUNNING:
            raise ConflictError("Already running")
        if state.credentials is None:
            raise CredentialsNotSetError("Organization credentials are not set")

        logger.info(f"Starting crawl for tenant {state.tenant_id}")
        session.status = SessionStatus.RUNNING
        session.cancellation_requested = False
        session.errors = []
        session.accounts = []
        session.catalog = []
        session.progress = None

        quota = self._resolve_quota(state.tenant_id)

        try:
            accounts: List[OrganizationAccount] = [
                account
                for page in self.adapter.list_organization_accounts(state.credentials)
                for account in page
            ]
        except PROVIDER_ERRORS as e:
            logger.error(f"Failed to list organization accounts for tenant {state.tenant_id}: {e}")
            session.errors.append(CrawlError(account_id=ROOT_SCOPE_ACCOUNT_ID, message=str(e)))
            session.final_statement = f"Failed to list organization accounts: {e}"
            return []

        allowed = len(accounts) if quota is None else quota
        retained = accounts[:allowed]
        session.total_accounts_seen = len(accounts)
        session.accounts_allowed = allowed
        session.accounts = [
            AccountWork(
                account_id=account.account_id,
                arn=account.arn,
                name=account.name,
                email=account.email,
                per_worker_status={self.worker.name: WorkStatus.NOT_STARTED},
            )
            for account in retained
        ]
        session.catalog = [normalize_account(account) for account in retained]
        logger.info(f"Found {len(accounts)} accounts, crawling {len(retained)}")

        self._refresh_progress(session, None)
        return [DispatchNext(tenant_id=state.tenant_id)]

    def dispatch_next(self, state: TenantState) -> List[Task]:
        """Dispatch the first not-started account, or finish the crawl if none remain."""
        session = state.session
        if self._cancellation_checkpoint(session):
            return []
        if session.status != SessionStatus.RUNNING:
            return []

        account = next(
            (a for a in session.accounts if a.work_status == WorkStatus.NOT_STARTED),
            None
        )
        if account is None:
            self._finalize(session)
            return []

        account.work_status = WorkStatus.RUNNING
        self._refresh_progress(session, account.account_id)
        logger.info(f"Dispatching account {format_account_identifier(account.name, account.account_id)}")

        if state.credentials is None:
            self._fail_account(session, account, "Organization credentials are not set")
            return [DispatchNext(tenant_id=state.tenant_id)]

        try:
            credentials = self.adapter.assume_role(state.credentials, account.account_id, self.role_name)
        except PROVIDER_ERRORS as e:
            logger.warning(f"Could not assume {self.role_name} in account {account.account_id}: {e}")
            self._fail_account(session, account, str(e))
            return [DispatchNext(tenant_id=state.tenant_id)]

        return [StartWorker(tenant_id=state.tenant_id, account_id=account.account_id, credentials=credentials)]

    def on_worker_event(self, state: TenantState, event: WorkerEvent) -> List[Task]:
        """
        Record a worker's progress report.

        A finished report appends the account's records (stamped with the
        account email) in one batch. Events arriving while the session is
        not running, or for an account that is not running, are discarded.
        """
        session = state.session
        if self._cancellation_checkpoint(session):
            return []
        if session.status != SessionStatus.RUNNING:
            logger.debug(f"Discarding {event.status.value} event for {event.account_id}: session is idle")
            return []

        account = session.find_account(event.account_id)
        if account is None or account.work_status != WorkStatus.RUNNING:
            logger.warning(f"Discarding {event.status.value} event for account {event.account_id} that is not running")
            return []

        account.per_worker_status[event.worker_name] = event.status
        if event.status == WorkStatus.FINISHED:
            if event.error:
                self._record_account_error(session, account, event.error)
            else:
                session.catalog.extend(
                    record.model_copy(update={"account_email": account.email})
                    for record in event.data
                )

        tasks: List[Task] = []
        if all(status == WorkStatus.FINISHED for status in account.per_worker_status.values()):
            account.work_status = WorkStatus.FINISHED
            tasks.append(DispatchNext(tenant_id=state.tenant_id))

        if _count_finished(session) == len(session.accounts):
            self._finalize(session)
        else:
            self._refresh_progress(session, event.account_id)
        return tasks

    def request_cancel(self, state: TenantState, work_in_flight: bool = True) -> List[Task]:
        """
        Ask the crawl to stop at its next checkpoint.

        In-flight work is never interrupted. When no account is in flight, or
        the caller holds no pending work for the tenant (the process that was
        driving the crawl is gone), no worker report will arrive to carry the
        checkpoint, so a dispatch step is returned to reach it.

        Args:
            state: Tenant state
            work_in_flight: Whether the caller's scheduler still holds tasks for the tenant
        """
        session = state.session
        session.cancellation_requested = True
        logger.info(f"Cancellation requested for tenant {state.tenant_id}")
        if session.status != SessionStatus.RUNNING:
            return []
        account_running = any(account.work_status == WorkStatus.RUNNING for account in session.accounts)
        if not account_running or not work_in_flight:
            return [DispatchNext(tenant_id=state.tenant_id)]
        return []

    def resume(self, state: TenantState) -> List[Task]:
        """
        Continue a running crawl whose pending steps were lost with the process driving it.

        An account left running has no live worker, so it is returned to
        not-started and crawled again from scratch. Must only be used when no
        other process is still driving the crawl.
        """
        session = state.session
        if session.status != SessionStatus.RUNNING:
            return []
        reverted = self._revert_running_accounts(session)
        logger.info(f"Resuming crawl for tenant {state.tenant_id}, re-queuing {reverted} interrupted accounts")
        self._refresh_progress(session, None)
        return [DispatchNext(tenant_id=state.tenant_id)]

    def clear(self, state: TenantState) -> None:
        """Reset the session to idle, discarding accounts, catalog and errors."""
        state.session = CrawlSession()
        logger.info(f"Cleared crawl session for tenant {state.tenant_id}")

    def handle_action(self, state: TenantState, action: str, arn: str, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run a remediation command against the identity at ``arn``.

        Args:
            state: Tenant state
            action: "deleteUser" or "deleteUnusedAccessKeys"
            arn: ARN of the target IAM user
            config: Catalog config of the target (its UserName is used)

        Returns:
            Response body with a human-readable message

        Raises:
            UnknownActionError: If the action is not supported
            CredentialsNotSetError: If no organization credentials are set
            ClientError: If role assumption or the remediation itself fails
        """
        try:
            remediation = RemediationAction(action)
        except ValueError as e:
            raise UnknownActionError(f"Unsupported action: {action}") from e
        if state.credentials is None:
            raise CredentialsNotSetError("Organization credentials are not set")

        account_id = account_id_from_arn(arn)
        user_name = config.get("UserName") or arn.rsplit("/", 1)[-1]
        credentials = self.adapter.assume_role(state.credentials, account_id, self.role_name)
        session = state.session

        if remediation == RemediationAction.DELETE_USER:
            self.worker.delete_user(account_id, credentials, user_name)
            session.catalog = [record for record in session.catalog if record.arn != arn]
            return {"message": "User deleted"}

        deleted = self.worker.delete_unused_access_keys(account_id, credentials, user_name)
        for record in session.catalog:
            if record.arn == arn and isinstance(record, IamUserRecord):
                record.config.accessKeys = [
                    key for key in record.config.accessKeys if key.get("AccessKeyId") not in deleted
                ]
        return {"message": "Unused access keys deleted", "deleted_access_key_ids": deleted}

    def _resolve_quota(self, tenant_id: str) -> Optional[int]:
        try:
            return self.tier_resolver.get_account_quota(tenant_id)
        except TierResolutionError as e:
            logger.warning(f"Could not resolve account quota for tenant {tenant_id}, crawling no accounts: {e}")
            return 0

    def _cancellation_checkpoint(self, session: CrawlSession) -> bool:
        if not session.cancellation_requested:
            return False

        self._revert_running_accounts(session)
        session.status = SessionStatus.IDLE
        session.progress = None
        session.cancellation_requested = False
        session.final_statement = (
            f"Cancelled after {_count_finished(session)} of {len(session.accounts)} AWS accounts."
        )
        logger.info(session.final_statement)
        return True

    def _revert_running_accounts(self, session: CrawlSession) -> int:
        reverted = 0
        for account in session.accounts:
            if account.work_status == WorkStatus.RUNNING:
                account.work_status = WorkStatus.NOT_STARTED
                account.per_worker_status = {name: WorkStatus.NOT_STARTED for name in account.per_worker_status}
                reverted += 1
        return reverted

    def _record_account_error(self, session: CrawlSession, account: AccountWork, message: str) -> None:
        account.error_message = message
        session.errors.append(CrawlError(account_id=account.account_id, email=account.email, message=message))

    def _fail_account(self, session: CrawlSession, account: AccountWork, message: str) -> None:
        self._record_account_error(session, account, message)
        account.per_worker_status = {name: WorkStatus.FINISHED for name in account.per_worker_status}
        account.work_status = WorkStatus.FINISHED
        self._refresh_progress(session, account.account_id)

    def _refresh_progress(self, session: CrawlSession, current_account_id: Optional[str]) -> None:
        finished = _count_finished(session)
        total = len(session.accounts)
        session.progress = Progress(finished=finished, total=total, current_account_id=current_account_id)
        session.final_statement = (
            f"Scanning {finished} of {total} AWS accounts. "
            f"{_count_failed(session)} accounts failed so far."
        )

    def _finalize(self, session: CrawlSession) -> None:
        session.final_statement = (
            f"Processed {len(session.accounts)} AWS accounts. "
            f"Failed to fetch {_count_failed(session)} accounts."
        )
        session.progress = None
        session.status = SessionStatus.IDLE
        logger.info(session.final_statement)
