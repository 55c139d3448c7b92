"""Diff engine: classify the desired model against persisted state."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from stackwright.engine.errors import KindChangeError
from stackwright.engine.resolver import resolve_dependencies, state_graph
from stackwright.engine.types import Action, Diff, ResourceChange
from stackwright.resources.kinds import is_stateful

if TYPE_CHECKING:
    from collections.abc import Sequence

    from stackwright.core.state import DeploymentState, StateEntry
    from stackwright.resources.base import Resource

logger = logging.getLogger(__name__)


def _classify(resource: Resource, prior: StateEntry | None, deps: list[str]) -> ResourceChange:
    change = ResourceChange(
        name=resource.name,
        kind=resource.kind,
        action=Action.CREATE,
        fingerprint=resource.fingerprint,
        identity_fingerprint=resource.identity_fingerprint,
        dependencies=deps,
        config=resource.config(),
    )
    if prior is None:
        return change

    change.prior_fingerprint = prior.fingerprint
    change.identifier = prior.identifier
    if prior.fingerprint == resource.fingerprint:
        change.action = Action.NOOP
    elif prior.identity_fingerprint and prior.identity_fingerprint != change.identity_fingerprint:
        change.action = Action.REPLACE
        change.replacement = True
    else:
        change.action = Action.UPDATE
    return change


def diff(resources: Sequence[Resource], state: DeploymentState) -> Diff:
    """Compare declared *resources* (in dependency order) against *state*.

    Orphans of stateful kinds land in ``retained`` instead of ``to_delete``;
    deletes are listed dependents-first.

    Raises:
        KindChangeError: If a declared name is recorded under another kind.
    """
    moved = [
        (r.name, state.resources[r.name].kind.value, r.kind.value)
        for r in resources
        if r.name in state.resources and state.resources[r.name].kind != r.kind
    ]
    if moved:
        raise KindChangeError(moved)

    deps = resolve_dependencies(resources)
    result = Diff()
    for r in resources:
        change = _classify(r, state.resources.get(r.name), deps[r.name])
        logger.debug("Classified %s as %s", r.name, change.action.value)
        match change.action:
            case Action.CREATE:
                result.to_create.append(change)
            case Action.UPDATE | Action.REPLACE:
                result.to_update.append(change)
            case _:
                result.unchanged.append(change)

    desired = {r.name for r in resources}
    for name in state_graph(state).reverse_topological_order():
        if name in desired:
            continue
        entry = state.resources[name]
        change = ResourceChange(
            name=name,
            kind=entry.kind,
            action=Action.DELETE,
            prior_fingerprint=entry.fingerprint,
            identifier=entry.identifier,
            dependencies=list(entry.dependencies),
        )
        if is_stateful(entry.kind):
            change.action = Action.RETAIN
            logger.warning(
                "%s '%s' is no longer declared; retaining it (stateful). "
                "Use destroy --force to delete it.",
                entry.kind.value,
                name,
            )
            result.retained.append(change)
        else:
            result.to_delete.append(change)

    logger.info(
        "Diff: %d to create, %d to update, %d to delete, %d unchanged, %d retained",
        len(result.to_create),
        len(result.to_update),
        len(result.to_delete),
        len(result.unchanged),
        len(result.retained),
    )
    return result
