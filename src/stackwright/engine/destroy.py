"""Destroy engine: tear recorded resources down in reverse dependency order."""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING

from stackwright.engine.errors import (
    ApplyCanceled,
    BlockedByDependentError,
    StateCorruptionError,
    UnknownResourceKindError,
)
from stackwright.engine.resolver import state_graph
from stackwright.engine.retry import RetryPolicy
from stackwright.engine.scheduler import GraphScheduler
from stackwright.engine.types import DestroyResult, ResourceFailure
from stackwright.resources.kinds import is_stateful

if TYPE_CHECKING:
    from collections.abc import Iterable

    from stackwright.core.state import DeploymentState, StateEntry
    from stackwright.core.store import StateStore
    from stackwright.engine.adapters import AdapterRegistry, EngineContext

logger = logging.getLogger(__name__)


class DestroyEngine:
    """Deletes resources recorded in state, dependents first.

    Edges are re-derived from the state alone, since the declarations may be
    gone.  Stateful kinds are skipped unless ``force`` is set.  Failures are
    isolated per branch: a failed delete holds back only the resources that
    must outlive it (reported as ``BlockedByDependentError``), and independent
    branches keep going.
    """

    def __init__(
        self,
        store: StateStore,
        registry: AdapterRegistry,
        ctx: EngineContext,
        *,
        retry: RetryPolicy | None = None,
        max_workers: int = 4,
    ) -> None:
        self._store = store
        self._registry = registry
        self._ctx = ctx
        self._retry = retry or RetryPolicy()
        self._scheduler = GraphScheduler(max_workers=max_workers)

    def destroy(
        self,
        state: DeploymentState,
        force: bool = False,
        names: Iterable[str] | None = None,
    ) -> DestroyResult:
        """Delete every entry of *state* (or only *names*) and report the outcome."""
        graph = state_graph(state)
        wanted = set(state.resources) if names is None else set(names) & set(state.resources)
        teardown = [n for n in graph.reverse_topological_order() if n in wanted]

        result = DestroyResult()
        targets: list[str] = []
        for name in teardown:
            entry = state.resources[name]
            if is_stateful(entry.kind) and not force:
                logger.info("Skipping stateful %s '%s' (use --force)", entry.kind.value, name)
                result.skipped.append(name)
            else:
                targets.append(name)

        if not targets:
            logger.info("Nothing to destroy")
            return result
        logger.info("Destroying %d resources", len(targets))

        # Deleting X requires everything that depends on X to be gone first.
        dependents = graph.dependents()
        target_set = set(targets)
        prerequisites = {n: sorted(dependents[n] & target_set) for n in targets}
        survivors = {n: sorted(dependents[n] - target_set) for n in targets}

        def on_success(name: str, _: None) -> None:
            self._store.remove(name)
            result.deleted.append(name)
            logger.info("delete %s '%s'", state.resources[name].kind.value, name)

        try:
            outcome = self._scheduler.run(
                targets,
                prerequisites,
                lambda name: self._delete_one(state.resources[name], survivors[name]),
                on_success=on_success,
                stop_on_failure=False,
            )
        except KeyboardInterrupt as e:
            raise ApplyCanceled("Destroy canceled; deleted resources stay removed") from e

        mutated = bool(result.deleted)
        for name in targets:
            kind = state.resources[name].kind
            if name in outcome.failed:
                exc = outcome.failed[name]
            elif name in outcome.blocked:
                exc = BlockedByDependentError(name, outcome.blocked[name])
            else:
                continue
            result.failed.append(
                ResourceFailure.from_exception(name, kind, exc, state_mutated=mutated)
            )
            logger.warning("Failed to delete %s '%s': %s", kind.value, name, exc)
        return result

    def _delete_one(self, entry: StateEntry, survivors: list[str]) -> None:
        if survivors:
            raise BlockedByDependentError(entry.name, survivors)
        try:
            adapter = self._registry.get(entry.kind)
        except UnknownResourceKindError as e:
            raise StateCorruptionError(
                f"No adapter can interpret {entry.kind.value} '{entry.name}' "
                f"({entry.identifier})"
            ) from e
        logger.debug("delete %s '%s' (%s)", entry.kind.value, entry.name, entry.identifier)
        self._retry.call(
            partial(adapter.delete, self._ctx, entry.identifier),
            description=f"delete {entry.kind.value} '{entry.name}'",
        )
