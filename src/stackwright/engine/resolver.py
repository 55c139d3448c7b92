"""Dependency resolution for declared resources and persisted state."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from stackwright.engine.errors import ValidationError
from stackwright.engine.graph import DependencyGraph
from stackwright.resources.kinds import KIND_DEPENDENCIES, ResourceKind
from stackwright.resources.markers import allowed_ref_kinds

if TYPE_CHECKING:
    from collections.abc import Sequence

    from stackwright.core.state import DeploymentState
    from stackwright.resources.base import Resource

logger = logging.getLogger(__name__)


def validate_references(resources: Sequence[Resource]) -> list[str]:
    """Check every reference names a declared resource of an acceptable kind.

    Return list of error messages (empty = valid).
    """
    by_name = {r.name: r for r in resources}
    errors: list[str] = []
    for r in resources:
        field_kinds = allowed_ref_kinds(r)
        allowed = KIND_DEPENDENCIES[r.kind]
        for ref in r.references():
            target = by_name.get(ref.name)
            if target is None:
                errors.append(
                    f"{r.kind.value} '{r.name}' references unknown resource '{ref.name}'"
                )
                continue
            if ref.name == r.name:
                errors.append(f"{r.kind.value} '{r.name}' references itself")
                continue
            accepted = field_kinds.get(ref.field) or tuple(allowed)
            if target.kind not in accepted or target.kind not in allowed:
                errors.append(
                    f"{r.kind.value} '{r.name}' field '{ref.field}' cannot reference "
                    f"{target.kind.value} '{target.name}'"
                )
    return errors


def resolve_dependencies(resources: Sequence[Resource]) -> dict[str, list[str]]:
    """Build ``name -> [dependency names]`` from declared references.

    Compute units reference their role through the ``role`` field, so the
    "compute after role" rule falls out of the same edges.
    """
    names = {r.name for r in resources}
    return {
        r.name: [ref for ref in r.reference_names() if ref in names and ref != r.name]
        for r in resources
    }


def dependency_graph(resources: Sequence[Resource]) -> DependencyGraph:
    """Graph over declared resources; declaration order breaks ties."""
    return DependencyGraph([r.name for r in resources], resolve_dependencies(resources))


def dependency_order(resources: Sequence[Resource]) -> list[str]:
    """Topological creation order.

    Raises:
        CyclicDependencyError: If references form a cycle.
    """
    order = dependency_graph(resources).topological_order()
    logger.debug("Resolved dependency order: %s", order)
    return order


def validate_model(resources: Sequence[Resource]) -> None:
    """Run reference and cycle checks; raise on the first failing pass."""
    errors = validate_references(resources)
    if errors:
        raise ValidationError(errors)
    dependency_order(resources)


def state_dependencies(state: DeploymentState) -> dict[str, list[str]]:
    """Re-derive dependency edges for the entries recorded in *state*.

    Recorded dependencies are kept when the kind table allows them.  Entries
    without recorded dependencies (older state documents) fall back to kind
    precedence: they depend on every other entry of a kind they may depend on.
    """
    entries = state.resources
    deps: dict[str, list[str]] = {}
    for name, entry in entries.items():
        allowed = KIND_DEPENDENCIES[ResourceKind(entry.kind)]
        if entry.dependencies:
            deps[name] = [
                d
                for d in entry.dependencies
                if d in entries and d != name and entries[d].kind in allowed
            ]
        else:
            deps[name] = [
                other
                for other, other_entry in entries.items()
                if other != name
                and other_entry.kind in allowed
                and other_entry.kind != entry.kind
            ]
    return deps


def state_graph(state: DeploymentState) -> DependencyGraph:
    return DependencyGraph(list(state.resources), state_dependencies(state))
