"""
Shared data types and messages for OrgSweep.

This module contains the plain data classes exchanged between the
orchestrator, the account crawl worker and the scheduler. Persisted
state lives in ``state.py``; these types are transient.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from .catalog import CatalogRecord
from .enums import WorkStatus

# Raw provider document (IAM user/group/role, access key metadata, ...)
RawEntity = Dict[str, Any]


@dataclass(frozen=True)
class RoleCredentials:
    """Short-lived credentials obtained by assuming a cross-account role."""
    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: Optional[datetime] = None


@dataclass(frozen=True)
class OrganizationAccount:
    """One member account as listed by AWS Organizations."""
    account_id: str
    arn: str
    name: str
    email: str


@dataclass
class IdentityPage:
    """One page of identity entities, in provider order."""
    users: List[RawEntity] = field(default_factory=list)
    groups: List[RawEntity] = field(default_factory=list)
    roles: List[RawEntity] = field(default_factory=list)


@dataclass
class IdentityInventory:
    """All identity entities of one account after pagination and enrichment."""
    users: List[RawEntity] = field(default_factory=list)
    groups: List[RawEntity] = field(default_factory=list)
    roles: List[RawEntity] = field(default_factory=list)


# Scheduler tasks. Every task is addressed to one tenant and is executed
# as a single step against that tenant's persisted state.

@dataclass(frozen=True)
class DispatchNext:
    """Ask the orchestrator to dispatch the next not-started account."""
    tenant_id: str


@dataclass(frozen=True)
class StartWorker:
    """Ask the worker to begin crawling an account."""
    tenant_id: str
    account_id: str
    credentials: RoleCredentials


@dataclass(frozen=True)
class CrawlAccount:
    """Continuation of StartWorker that performs the actual crawl."""
    tenant_id: str
    account_id: str
    credentials: RoleCredentials


@dataclass(frozen=True)
class WorkerEvent:
    """Progress report from a worker to the orchestrator."""
    tenant_id: str
    account_id: str
    worker_name: str
    status: WorkStatus
    data: List[CatalogRecord] = field(default_factory=list)
    error: Optional[str] = None


Task = Union[DispatchNext, StartWorker, CrawlAccount, WorkerEvent]
"""Any unit of work the scheduler can execute."""
