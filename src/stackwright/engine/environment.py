"""Environment injection for compute units.

Every data resource a compute unit ``uses`` is exposed to its handler code
under a kind-prefixed, name-derived variable, so handlers discover resources
without hardcoding identifiers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from stackwright.resources.kinds import ResourceKind
from stackwright.resources.naming import env_token

if TYPE_CHECKING:
    from collections.abc import Mapping

    from stackwright.resources.compute import ComputeUnitResource

_TEMPLATES: dict[ResourceKind, str] = {
    ResourceKind.TABLE: "KV_{}",
    ResourceKind.BUCKET: "STORAGE_{}",
    ResourceKind.QUEUE: "QUEUE_{}_URL",
    ResourceKind.RELATIONAL_DATABASE: "SQL_{}_ARN",
    ResourceKind.SECRET: "SECRET_{}_ARN",
    ResourceKind.PARAMETER: "PARAM_{}",
}


def variable_name(kind: ResourceKind | str, name: str) -> str | None:
    """Variable under which a resource's identifier is exposed, or ``None``."""
    template = _TEMPLATES.get(ResourceKind(kind))
    return template.format(env_token(name)) if template else None


def inject_environment(
    compute: ComputeUnitResource,
    identifiers: Mapping[str, tuple[ResourceKind, str]],
) -> dict[str, str]:
    """Declared environment merged over injected variables.

    *identifiers* maps resource name to ``(kind, committed identifier)``;
    names that are not committed yet are skipped.  User-declared keys win.
    """
    env: dict[str, str] = {}
    names = list(compute.uses)
    if compute.subscribes_to and compute.subscribes_to not in names:
        names.append(compute.subscribes_to)
    for name in names:
        if name not in identifiers:
            continue
        kind, identifier = identifiers[name]
        var = variable_name(kind, name)
        if var is not None:
            env[var] = identifier
    env.update(compute.environment)
    return dict(sorted(env.items()))
