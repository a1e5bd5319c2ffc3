"""
Crawl service facade.

Exposes the per-tenant operations (start, cancel, resources, settings,
remediation) on top of the orchestrator. Every mutating operation runs one
orchestrator step inside a store transaction and hands any continuation
tasks to the scheduler.
"""

import logging
from typing import Any, Dict, Optional

from .aws.adapter import Boto3IdentityAdapter
from .config import OrgSweepConfig
from .constants import QUERY_EXAMPLES, RESOURCE_TYPE_DESCRIPTORS
from .orchestrator import FleetOrchestrator
from .scheduler import CrawlScheduler
from .state import CrawlSession, OrganizationCredentials, TenantState
from .store import JsonFileSessionStore, SessionStore
from .tiers import StaticTierResolver
from .worker import AccountCrawlWorker

logger = logging.getLogger(__name__)


def _status_body(session: CrawlSession) -> Dict[str, Any]:
    quota = session.quota()
    return {
        "status": session.status.value,
        "progress": session.progress.model_dump() if session.progress else None,
        "final_statement": session.final_statement,
        "quota": quota.model_dump() if quota else None,
    }


class CrawlService:
    def __init__(self, store: SessionStore, orchestrator: FleetOrchestrator, scheduler: CrawlScheduler) -> None:
        self.store = store
        self.orchestrator = orchestrator
        self.scheduler = scheduler

    @classmethod
    def from_config(cls, config: OrgSweepConfig, store: Optional[SessionStore] = None) -> "CrawlService":
        """Wire the production adapter, tier resolver, worker and store from configuration."""
        adapter = Boto3IdentityAdapter(
            region=config.region,
            role_session_name=config.role_session_name,
            role_duration_seconds=config.role_duration_seconds,
        )
        worker = AccountCrawlWorker(adapter, fan_out_width=config.fan_out_width)
        orchestrator = FleetOrchestrator(
            adapter,
            StaticTierResolver(default_tier=config.account_tier),
            worker,
            role_name=config.role_name,
        )
        store = store or JsonFileSessionStore(config.state_dir)
        return cls(store, orchestrator, CrawlScheduler(store, orchestrator, worker))

    def start(self, tenant_id: str) -> Dict[str, Any]:
        """
        Start a crawl and queue its first dispatch step.

        Raises:
            ConflictError: If a crawl is already running
            CredentialsNotSetError: If no organization credentials are set
        """
        with self.store.transaction(tenant_id) as state:
            tasks = self.orchestrator.start(state)
        self.scheduler.submit(tasks)
        return _status_body(state.session)

    def run_until_idle(self, max_steps: Optional[int] = None) -> int:
        return self.scheduler.run(max_steps)

    def cancel(self, tenant_id: str) -> Dict[str, Any]:
        """
        Request cancellation of the running crawl.

        When this process holds no queued work for the tenant (the crawl was
        started elsewhere, or its process went away), the cancellation
        checkpoint is queued here so the session still reaches idle.
        """
        with self.store.transaction(tenant_id) as state:
            tasks = self.orchestrator.request_cancel(
                state, work_in_flight=self.scheduler.has_pending(tenant_id)
            )
        self.scheduler.submit(tasks)
        return _status_body(state.session)

    def resume(self, tenant_id: str) -> Dict[str, Any]:
        """
        Continue a running crawl whose queued work was lost with its process.

        Accounts left running are crawled again from the start. Does nothing
        when this process already holds queued work for the tenant.
        """
        if self.scheduler.has_pending(tenant_id):
            return self.get_status(tenant_id)
        with self.store.transaction(tenant_id) as state:
            tasks = self.orchestrator.resume(state)
        self.scheduler.submit(tasks)
        return _status_body(state.session)

    def clear(self, tenant_id: str) -> Dict[str, Any]:
        with self.store.transaction(tenant_id) as state:
            self.orchestrator.clear(state)
        return _status_body(state.session)

    def get_status(self, tenant_id: str) -> Dict[str, Any]:
        return _status_body(self.store.load(tenant_id).session)

    def get_resources(self, tenant_id: str) -> Dict[str, Any]:
        session = self.store.load(tenant_id).session
        quota = session.quota()
        return {
            "resource_types": RESOURCE_TYPE_DESCRIPTORS,
            "query_examples": QUERY_EXAMPLES,
            "resources": [record.model_dump(mode="json") for record in session.catalog],
            "errors": [error.model_dump() for error in session.errors],
            "quota": quota.model_dump() if quota else None,
        }

    def get_settings(self, tenant_id: str) -> Dict[str, Any]:
        credentials = self.store.load(tenant_id).credentials
        if credentials is None:
            return {}
        return {"credentials": credentials.masked()}

    def set_credentials(self, tenant_id: str, access_key_id: str, secret_access_key: str) -> Dict[str, Any]:
        with self.store.transaction(tenant_id) as state:
            state.credentials = OrganizationCredentials(
                access_key_id=access_key_id,
                secret_access_key=secret_access_key,
            )
        logger.info(f"Organization credentials set for tenant {tenant_id}")
        return {"credentials": state.credentials.masked()}

    def clear_credentials(self, tenant_id: str) -> None:
        with self.store.transaction(tenant_id) as state:
            state.credentials = None
        logger.info(f"Organization credentials cleared for tenant {tenant_id}")

    def handle_action(self, tenant_id: str, action: str, arn: str, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run a remediation action synchronously.

        The catalog is only saved when the action succeeds; failures
        propagate to the caller unchanged.
        """
        with self.store.transaction(tenant_id) as state:
            return self.orchestrator.handle_action(state, action, arn, config)

    def tenant_state(self, tenant_id: str) -> TenantState:
        return self.store.load(tenant_id)
