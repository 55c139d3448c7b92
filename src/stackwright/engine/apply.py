"""Apply engine: execute creates and updates in dependency order."""

from __future__ import annotations

import logging
import threading
from functools import partial
from typing import TYPE_CHECKING, Any

from stackwright.engine.environment import inject_environment
from stackwright.engine.errors import (
    ApplyCanceled,
    ApplyError,
    PermanentProviderError,
)
from stackwright.engine.retry import RetryPolicy
from stackwright.engine.scheduler import GraphScheduler
from stackwright.engine.types import Action, DeploymentResult, ResourceFailure
from stackwright.resources.compute import ComputeUnitResource
from stackwright.resources.kinds import ResourceKind

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence

    from stackwright.core.store import StateStore
    from stackwright.engine.adapters import AdapterRegistry, EngineContext
    from stackwright.engine.types import ResourceChange

logger = logging.getLogger(__name__)


class ApplyEngine:
    """Runs create/update changes against provider adapters.

    Each success is committed to the State Store immediately, on the
    coordinating thread.  Transient failures are retried per ``retry``; the
    first permanent failure stops dispatch, lets in-flight calls finish (their
    successes are still committed) and raises ``ApplyError`` with the partial
    result.  Nothing already committed is ever rolled back.

    Unchanged resources downstream of an applied change follow it through the
    run: once their dependencies commit, any whose dependency came back with a
    new identifier is updated so its ``refs`` and injected environment match
    the state record.
    """

    def __init__(
        self,
        store: StateStore,
        registry: AdapterRegistry,
        ctx: EngineContext,
        *,
        retry: RetryPolicy | None = None,
        max_workers: int = 1,
    ) -> None:
        self._store = store
        self._registry = registry
        self._ctx = ctx
        self._retry = retry or RetryPolicy()
        self._scheduler = GraphScheduler(max_workers=max_workers)
        self._lock = threading.Lock()
        self._identifiers: dict[str, tuple[ResourceKind, str]] = {}

    def apply(
        self,
        changes: Sequence[ResourceChange],
        dependencies: Mapping[str, Iterable[str]] | None = None,
    ) -> DeploymentResult:
        """Apply *changes* (already in dependency order).

        *dependencies* defaults to the dependencies recorded on each change.
        DELETE and RETAIN changes are ignored; NOOP changes are only revisited
        when they depend on an applied change.
        """
        actionable = [
            c for c in changes if c.action in (Action.CREATE, Action.UPDATE, Action.REPLACE)
        ]
        followers = _followers(changes, {c.name for c in actionable})
        by_name = {c.name: c for c in actionable} | followers
        nodes = [c.name for c in changes if c.name in by_name]
        prerequisites = {name: change.dependencies for name, change in by_name.items()}
        if dependencies is not None:
            prerequisites.update({n: list(d) for n, d in dependencies.items() if n in by_name})

        with self._lock:
            self._identifiers = {
                name: (entry.kind, entry.identifier)
                for name, entry in self._store.snapshot().resources.items()
            }
            baseline = {name: ident for name, (_, ident) in self._identifiers.items()}

        result = DeploymentResult()
        if not actionable:
            logger.info("Nothing to apply")
            return result
        logger.info("Applying %d changes", len(actionable))

        uncommitted: list[str] = []

        def work(name: str) -> str | None:
            if name in followers:
                return self._follow(followers[name], baseline)
            return self._apply_one(by_name[name])

        def on_success(name: str, identifier: str | None) -> None:
            if identifier is None:
                logger.debug("'%s' is still current; no dependency identifier changed", name)
                return
            change = by_name[name]
            try:
                self._store.commit(
                    name,
                    change.kind,
                    identifier,
                    change.fingerprint or "",
                    identity_fingerprint=change.identity_fingerprint or "",
                    dependencies=change.dependencies,
                )
            except Exception:
                uncommitted.append(name)
                raise
            with self._lock:
                self._identifiers[name] = (change.kind, identifier)
            if change.action is Action.CREATE:
                result.created.append(name)
            else:
                result.updated.append(name)
            logger.info(
                "%s %s '%s' -> %s", change.action.value, change.kind.value, name, identifier
            )

        try:
            outcome = self._scheduler.run(
                nodes,
                prerequisites,
                work,
                on_success=on_success,
                stop_on_failure=True,
            )
        except KeyboardInterrupt as e:
            raise ApplyCanceled("Apply canceled; committed resources are kept") from e
        except Exception as e:
            # A state write failed; stop rather than run ahead of the durable record.
            failed = by_name[uncommitted[0]] if uncommitted else actionable[0]
            result.failed.append(
                ResourceFailure.from_exception(
                    failed.name, failed.kind, e, state_mutated=result.state_mutated
                )
            )
            raise ApplyError(
                result=result, name=failed.name, kind=failed.kind.value, message=str(e)
            ) from e

        if not outcome.failed:
            return result

        for name in [n for n in nodes if n in outcome.failed]:
            change = by_name[name]
            result.failed.append(
                ResourceFailure.from_exception(
                    name, change.kind, outcome.failed[name], state_mutated=result.state_mutated
                )
            )
        skipped = sorted(set(outcome.blocked) | set(outcome.not_started))
        if skipped:
            logger.info("Not attempted after failure: %s", ", ".join(skipped))

        first_failure = result.failed[0]
        raise ApplyError(
            result=result,
            name=first_failure.name,
            kind=first_failure.kind.value,
            message=first_failure.message,
        ) from outcome.failed[first_failure.name]

    def _follow(self, change: ResourceChange, baseline: Mapping[str, str]) -> str | None:
        """Update *change* if a dependency's identifier moved during this run."""
        with self._lock:
            current = {
                dep: self._identifiers[dep][1]
                for dep in change.dependencies
                if dep in self._identifiers
            }
        moved = sorted(dep for dep, ident in current.items() if baseline.get(dep) != ident)
        if not moved:
            return None
        logger.info(
            "%s '%s' follows new identifiers of %s",
            change.kind.value,
            change.name,
            ", ".join(moved),
        )
        return self._apply_one(change)

    def _apply_one(self, change: ResourceChange) -> str:
        adapter = self._registry.get(change.kind)
        config = self._request(change)
        call: Callable[[], Any]
        match change.action:
            case Action.CREATE:
                call = partial(adapter.create, self._ctx, config)
            case Action.UPDATE:
                assert change.identifier is not None
                call = partial(adapter.update, self._ctx, change.identifier, config)
            case Action.REPLACE:
                assert change.identifier is not None
                call = partial(adapter.replace, self._ctx, change.identifier, config)
            case _:
                raise ValueError(f"Unexpected action for apply: {change.action}")

        logger.debug("%s %s '%s'", change.action.value, change.kind.value, change.name)
        result = self._retry.call(
            call, description=f"{change.action.value} {change.kind.value} '{change.name}'"
        )
        if not isinstance(result, str) or not result:
            raise PermanentProviderError(
                f"Adapter for {change.kind.value} returned no identifier for '{change.name}'"
            )
        return result

    def _request(self, change: ResourceChange) -> dict[str, Any]:
        """Adapter payload: declared config plus naming and resolved references."""
        config = dict(change.config or {})
        with self._lock:
            identifiers = dict(self._identifiers)
        config["name"] = change.name
        config["kind"] = change.kind.value
        config["physical_name"] = self._ctx.physical_name(change.name)
        config["refs"] = {
            dep: identifiers[dep][1] for dep in change.dependencies if dep in identifiers
        }
        if change.kind is ResourceKind.COMPUTE_UNIT:
            declared = {k: v for k, v in config.items() if k in ComputeUnitResource.model_fields}
            compute = ComputeUnitResource.model_validate(declared)
            config["environment"] = inject_environment(compute, identifiers)
        elif change.kind is ResourceKind.PARAMETER:
            config["path"] = self._ctx.parameter_path(change.name)
        return config


def _followers(
    changes: Sequence[ResourceChange], applied: set[str]
) -> dict[str, ResourceChange]:
    """Unchanged resources that depend, directly or transitively, on *applied* names.

    Each comes back as an UPDATE against its recorded identifier.
    """
    upstream = set(applied)
    followers: dict[str, ResourceChange] = {}
    candidates = [c for c in changes if c.action is Action.NOOP and c.identifier]
    grew = True
    while grew:
        grew = False
        for c in candidates:
            if c.name not in followers and upstream.intersection(c.dependencies):
                followers[c.name] = c.model_copy(update={"action": Action.UPDATE})
                upstream.add(c.name)
                grew = True
    return followers
