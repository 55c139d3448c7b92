"""State Store: durable, leased, incrementally-committed deployment state."""

from __future__ import annotations

import contextlib
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from stackwright.core.state import DeploymentState, StateEntry, deployment_key
from stackwright.engine.errors import StateLeaseError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from stackwright.resources.kinds import ResourceKind

logger = logging.getLogger(__name__)


class StateStore(ABC):
    """Read/write/lease interface over one backend.

    ``commit`` and ``remove`` persist the whole document immediately, once per
    resource, so a crash mid-run only loses work after the crash point.  Both
    require the lease for the loaded deployment key.
    """

    def __init__(self) -> None:
        self._state: DeploymentState | None = None
        self._lease_key: str | None = None
        self._run_id: str | None = None

    # Backend hooks --------------------------------------------------------

    @abstractmethod
    def _read(self, key: str) -> str | None:
        """Return the raw document for *key*, or ``None`` if none exists."""

    @abstractmethod
    def _write(self, key: str, payload: str) -> None:
        """Persist the raw document for *key*."""

    @abstractmethod
    def _acquire(self, key: str, run_id: str) -> None:
        """Take the lease or raise ``ConcurrentDeploymentError`` without waiting."""

    @abstractmethod
    def _release(self, key: str, run_id: str) -> None:
        """Give the lease back."""

    @abstractmethod
    def _break_lease(self, key: str) -> None:
        """Remove a lease regardless of its holder."""

    # Lease ------------------------------------------------------------------

    @property
    def run_id(self) -> str | None:
        return self._run_id

    def acquire(self, project: str, stage: str, region: str, run_id: str | None = None) -> str:
        if self._lease_key is not None:
            raise StateLeaseError(f"Lease already held for {self._lease_key}")
        key = deployment_key(project, stage, region)
        run_id = run_id or uuid.uuid4().hex
        self._acquire(key, run_id)
        self._lease_key = key
        self._run_id = run_id
        logger.info("Lease acquired for %s (run %s)", key, run_id)
        return run_id

    def release(self) -> None:
        if self._lease_key is None or self._run_id is None:
            return
        key, run_id = self._lease_key, self._run_id
        try:
            self._release(key, run_id)
        finally:
            self._lease_key = None
            self._run_id = None
        logger.info("Lease released for %s (run %s)", key, run_id)

    @contextlib.contextmanager
    def lease(
        self, project: str, stage: str, region: str, run_id: str | None = None
    ) -> Iterator[str]:
        run_id = self.acquire(project, stage, region, run_id)
        try:
            yield run_id
        finally:
            self.release()

    def force_release(self, project: str, stage: str, region: str) -> None:
        """Drop a stale lease left behind by a crashed run."""
        key = deployment_key(project, stage, region)
        self._break_lease(key)
        logger.warning("Lease for %s forcibly released", key)

    # State ------------------------------------------------------------------

    def load(self, project: str, stage: str, region: str) -> DeploymentState:
        """Load the state for a deployment key, or start an empty one."""
        key = deployment_key(project, stage, region)
        raw = self._read(key)
        if raw is None:
            logger.debug("No state for %s; starting empty", key)
            self._state = DeploymentState(project=project, stage=stage, region=region)
        else:
            self._state = DeploymentState.from_json(raw, expected_key=key)
            logger.debug(
                "State loaded: %s serial=%d, %d resources",
                key,
                self._state.serial,
                len(self._state.resources),
            )
        return self.snapshot()

    def snapshot(self) -> DeploymentState:
        return self._loaded().model_copy(deep=True)

    def commit(
        self,
        name: str,
        kind: ResourceKind,
        identifier: str,
        fingerprint: str,
        *,
        identity_fingerprint: str = "",
        dependencies: Iterable[str] = (),
    ) -> StateEntry:
        """Record one successfully applied resource and persist immediately."""
        state = self._writable()
        now = datetime.now(UTC)
        prior = state.resources.get(name)
        entry = StateEntry(
            name=name,
            kind=kind,
            identifier=identifier,
            fingerprint=fingerprint,
            identity_fingerprint=identity_fingerprint,
            dependencies=list(dependencies),
            created_at=prior.created_at if prior is not None else now,
            updated_at=now,
        )
        state.resources[name] = entry
        try:
            self._persist(state)
        except BaseException:
            if prior is None:
                del state.resources[name]
            else:
                state.resources[name] = prior
            raise
        logger.debug("Committed %s %s -> %s", kind.value, name, identifier)
        return entry

    def remove(self, name: str) -> None:
        """Forget a resource after its successful deletion and persist immediately."""
        state = self._writable()
        prior = state.resources.pop(name, None)
        if prior is None:
            return
        try:
            self._persist(state)
        except BaseException:
            state.resources[name] = prior
            raise
        logger.debug("Removed %s from state", name)

    def _loaded(self) -> DeploymentState:
        if self._state is None:
            raise StateLeaseError("State has not been loaded")
        return self._state

    def _writable(self) -> DeploymentState:
        state = self._loaded()
        if self._lease_key != state.key:
            raise StateLeaseError(f"Writing state for {state.key} requires holding its lease")
        return state

    def _persist(self, state: DeploymentState) -> None:
        state.serial += 1
        state.last_run_id = self._run_id
        try:
            self._write(state.key, state.to_json())
        except BaseException:
            state.serial -= 1
            raise
        logger.debug("State saved: %s serial=%d", state.key, state.serial)
