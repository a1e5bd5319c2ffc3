"""
Work-queue scheduler for crawl steps.

Tasks are executed one at a time in FIFO order. A task addressed to the
orchestrator runs inside a store transaction: the tenant state is loaded
under the tenant's lock and saved before the next task is admitted. Worker
tasks never receive tenant state; they only produce messages. Whatever a
step returns is appended to the queue as its continuation.

The queue lives in this process only. If the process goes away mid-crawl,
``CrawlService.resume`` or ``CrawlService.cancel`` from a new process picks
the persisted session up again.
"""

import logging
from collections import deque
from typing import Deque, Iterable, List, Optional

from .enums import SessionStatus, WorkStatus
from .orchestrator import FleetOrchestrator
from .store import SessionStore
from .types import CrawlAccount, DispatchNext, StartWorker, Task, WorkerEvent
from .worker import AccountCrawlWorker

logger = logging.getLogger(__name__)


class CrawlScheduler:
    def __init__(self, store: SessionStore, orchestrator: FleetOrchestrator, worker: AccountCrawlWorker) -> None:
        self.store = store
        self.orchestrator = orchestrator
        self.worker = worker
        self._queue: Deque[Task] = deque()

    def submit(self, tasks: Iterable[Task]) -> None:
        self._queue.extend(tasks)

    def pending(self) -> List[Task]:
        return list(self._queue)

    def has_pending(self, tenant_id: str) -> bool:
        return any(task.tenant_id == tenant_id for task in self._queue)

    def step(self) -> bool:
        """
        Execute the next queued task.

        Returns:
            False if the queue was empty, True otherwise
        """
        if not self._queue:
            return False
        task = self._queue.popleft()
        logger.debug(f"Executing {type(task).__name__} for tenant {task.tenant_id}")
        self.submit(self._execute(task))
        return True

    def run(self, max_steps: Optional[int] = None) -> int:
        """
        Execute tasks until the queue drains or max_steps is reached.

        Returns:
            Number of tasks executed
        """
        steps = 0
        while max_steps is None or steps < max_steps:
            if not self.step():
                break
            steps += 1
        return steps

    def _account_still_running(self, task: CrawlAccount) -> bool:
        session = self.store.load(task.tenant_id).session
        account = session.find_account(task.account_id)
        return (
            session.status == SessionStatus.RUNNING
            and account is not None
            and account.work_status == WorkStatus.RUNNING
        )

    def _execute(self, task: Task) -> List[Task]:
        if isinstance(task, StartWorker):
            return self.worker.start(task)
        if isinstance(task, CrawlAccount):
            # A cancel checkpoint may have returned the account to not-started
            if not self._account_still_running(task):
                logger.info(f"Skipping crawl of account {task.account_id}: it is no longer running")
                return []
            return self.worker.crawl(task)

        with self.store.transaction(task.tenant_id) as state:
            if isinstance(task, DispatchNext):
                return self.orchestrator.dispatch_next(state)
            if isinstance(task, WorkerEvent):
                return self.orchestrator.on_worker_event(state, task)
            raise TypeError(f"Unknown task type: {type(task).__name__}")
