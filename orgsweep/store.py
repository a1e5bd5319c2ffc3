"""
Tenant state persistence.

Handles loading and saving ``TenantState`` between orchestrator steps.
States are stored as JSON so a crawl can be resumed, inspected or
cancelled from another process. Every read-modify-write of a tenant's state
goes through ``transaction``, which holds the tenant's lock until the state
is saved.
"""

import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import ContextManager, Dict, Iterator, Protocol
from urllib.parse import quote

from filelock import FileLock, Timeout

from .exceptions import StateLockError, TenantStateMismatchError
from .state import TenantState

# Set up logging
logger = logging.getLogger(__name__)

# Seconds to wait for another process to release a tenant's state
STATE_LOCK_TIMEOUT = 30


def _check_tenant(state: TenantState, tenant_id: str) -> TenantState:
    if state.tenant_id != tenant_id:
        raise TenantStateMismatchError(
            f"Stored state belongs to tenant {state.tenant_id!r}, not {tenant_id!r}"
        )
    return state


class SessionStore(Protocol):
    def load(self, tenant_id: str) -> TenantState:
        """Return the tenant's state, or a fresh idle state if none is stored."""
        ...

    def save(self, state: TenantState) -> None:
        ...

    def transaction(self, tenant_id: str) -> ContextManager[TenantState]:
        """
        Load the tenant's state under its lock and save it when the block exits cleanly.

        If the block raises, nothing is saved.
        """
        ...


class InMemorySessionStore:
    """
    Keeps serialized states in memory.

    States are stored as JSON rather than as objects so that a step can
    only affect later steps through what it saves.
    """

    def __init__(self) -> None:
        self._states: Dict[str, str] = {}
        self._lock = threading.RLock()

    def load(self, tenant_id: str) -> TenantState:
        raw = self._states.get(tenant_id)
        if raw is None:
            return TenantState(tenant_id=tenant_id)
        return _check_tenant(TenantState.model_validate_json(raw), tenant_id)

    def save(self, state: TenantState) -> None:
        self._states[state.tenant_id] = state.model_dump_json()

    @contextmanager
    def transaction(self, tenant_id: str) -> Iterator[TenantState]:
        with self._lock:
            state = self.load(tenant_id)
            yield state
            self.save(state)


def _state_filename(tenant_id: str) -> str:
    """
    Build a file name for a tenant that no other tenant ID maps to.

    Args:
        tenant_id: Tenant identifier (e.g., "ops@example.com")

    Returns:
        Percent-encoded file name such as "ops%40example.com.json"

    Raises:
        ValueError: If tenant_id is empty
    """
    if not tenant_id:
        raise ValueError("tenant_id must not be empty")
    return f"{quote(tenant_id, safe='')}.json"


class JsonFileSessionStore:
    """
    Stores one JSON file per tenant under a base directory.

    Writers serialize on a ``<file>.lock`` file lock, so a cancel issued from
    a second process is never overwritten by a crawl step that loaded the
    state earlier.
    """

    def __init__(self, base_dir: str, lock_timeout: float = STATE_LOCK_TIMEOUT) -> None:
        self.base_dir = Path(base_dir)
        self.lock_timeout = lock_timeout
        self._locks: Dict[str, FileLock] = {}

    def path_for(self, tenant_id: str) -> Path:
        return self.base_dir / _state_filename(tenant_id)

    def _lock_for(self, tenant_id: str) -> FileLock:
        lock_path = str(self.path_for(tenant_id)) + ".lock"
        if lock_path not in self._locks:
            self._locks[lock_path] = FileLock(lock_path, timeout=self.lock_timeout)
        return self._locks[lock_path]

    def load(self, tenant_id: str) -> TenantState:
        path = self.path_for(tenant_id)
        if not path.exists():
            return TenantState(tenant_id=tenant_id)
        return _check_tenant(TenantState.model_validate_json(path.read_text()), tenant_id)

    def save(self, state: TenantState) -> None:
        path = self.path_for(state.tenant_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        # Each writer gets its own temp file; the rename is atomic
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with open(fd, "w", encoding="utf-8") as f:
                f.write(state.model_dump_json(indent=2))
            os.replace(tmp_path, path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise
        logger.debug(f"Saved state for tenant {state.tenant_id} to {path}")

    @contextmanager
    def transaction(self, tenant_id: str) -> Iterator[TenantState]:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        lock = self._lock_for(tenant_id)
        try:
            lock.acquire()
        except Timeout as e:
            raise StateLockError(
                f"State of tenant {tenant_id} is locked by another process (waited {self.lock_timeout}s)"
            ) from e
        try:
            state = self.load(tenant_id)
            yield state
            self.save(state)
        finally:
            lock.release()
