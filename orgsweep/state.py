"""
Persisted per-tenant crawl state.

The orchestrator never keeps state of its own: every step receives the
tenant's ``TenantState``, mutates it, and the caller persists it before the
next step is admitted.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .catalog import CatalogRecord
from .constants import NOT_STARTED_STATEMENT
from .enums import SessionStatus, WorkStatus
from .utils import mask_string


class OrganizationCredentials(BaseModel):
    """Long-lived credentials of the organization management account."""
    access_key_id: str
    secret_access_key: str

    def masked(self) -> Dict[str, str]:
        return {
            "access_key_id": mask_string(self.access_key_id),
            "secret_access_key": mask_string(self.secret_access_key),
        }


class AccountWork(BaseModel):
    """
    Crawl bookkeeping for one member account.

    work_status is FINISHED exactly when every per_worker_status entry is
    FINISHED. error_message is set when the account could not be crawled.
    """
    account_id: str
    arn: str
    name: str
    email: str
    work_status: WorkStatus = WorkStatus.NOT_STARTED
    error_message: Optional[str] = None
    per_worker_status: Dict[str, WorkStatus] = Field(default_factory=dict)


class CrawlError(BaseModel):
    account_id: str
    email: Optional[str] = None
    message: str


class Progress(BaseModel):
    finished: int
    total: int
    current_account_id: Optional[str] = None


class AccountQuota(BaseModel):
    """How many accounts the organization has and how many a crawl may cover."""
    total: int
    allowed: int


class CrawlSession(BaseModel):
    status: SessionStatus = SessionStatus.IDLE
    accounts: List[AccountWork] = Field(default_factory=list)
    cancellation_requested: bool = False
    total_accounts_seen: int = 0
    accounts_allowed: Optional[int] = None
    catalog: List[CatalogRecord] = Field(default_factory=list)
    errors: List[CrawlError] = Field(default_factory=list)
    progress: Optional[Progress] = None
    final_statement: str = NOT_STARTED_STATEMENT

    def find_account(self, account_id: str) -> Optional[AccountWork]:
        for account in self.accounts:
            if account.account_id == account_id:
                return account
        return None

    def quota(self) -> Optional[AccountQuota]:
        if self.accounts_allowed is None:
            return None
        return AccountQuota(total=self.total_accounts_seen, allowed=self.accounts_allowed)


class TenantState(BaseModel):
    tenant_id: str
    credentials: Optional[OrganizationCredentials] = None
    session: CrawlSession = Field(default_factory=CrawlSession)
