"""Declarative reference marker for resource models.

``Ref`` attaches to Pydantic fields via ``Annotated`` and marks the field as
naming another resource. Helper functions introspect the marker at runtime to
collect the references that drive dependency edges and permission synthesis.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo

    from stackwright.resources.kinds import ResourceKind

M = TypeVar("M")


@dataclass(frozen=True, slots=True)
class ResourceRef:
    """Resolved reference value extracted from a ``Ref``-annotated field."""

    name: str
    kind: ResourceKind | None = None
    field: str = ""


@dataclass(frozen=True, slots=True)
class Ref:
    """Field references another resource.

    ``kinds`` restricts the accepted target kinds; empty means "any kind the
    referring resource may depend on".
    """

    kinds: tuple[ResourceKind, ...] = ()

    def __init__(self, *kinds: ResourceKind) -> None:
        object.__setattr__(self, "kinds", tuple(kinds))


def _find_marker(field_info: FieldInfo, marker_type: type[M]) -> M | None:
    """Return the first marker of *marker_type* on a field, or ``None``."""
    return next((m for m in field_info.metadata if isinstance(m, marker_type)), None)


def _iter_marked_fields(
    model_or_cls: Any,
    marker_type: type[M],
) -> list[tuple[str, FieldInfo, M]]:
    """Return ``(field_name, field_info, marker)`` for every field carrying *marker_type*."""
    cls = model_or_cls if isinstance(model_or_cls, type) else type(model_or_cls)
    return [
        (name, fi, marker)
        for name, fi in cls.model_fields.items()
        if (marker := _find_marker(fi, marker_type)) is not None
    ]


def _coerce_to_list(value: Any) -> list[str]:
    """Normalize a scalar, list, or ``None`` to a flat list of strings."""
    if value is None:
        return []
    return list(value) if isinstance(value, list | tuple) else [value]


def collect_ref_specs(resource: Any) -> list[ResourceRef]:
    """Collect typed references from ``Ref``-annotated fields, in field order."""
    refs: list[ResourceRef] = []
    for name, _, marker in _iter_marked_fields(resource, Ref):
        kind = marker.kinds[0] if len(marker.kinds) == 1 else None
        refs.extend(
            ResourceRef(name=ref, kind=kind, field=name)
            for ref in _coerce_to_list(getattr(resource, name))
        )
    return refs


def collect_refs(resource: Any) -> list[str]:
    """Collect unique reference names from ``Ref``-annotated fields."""
    seen: dict[str, None] = {}
    for ref in collect_ref_specs(resource):
        seen.setdefault(ref.name, None)
    return list(seen)


def allowed_ref_kinds(resource_or_cls: Any) -> dict[str, tuple[ResourceKind, ...]]:
    """Map each ``Ref`` field to the kinds it accepts (empty tuple = any)."""
    return {name: marker.kinds for name, _, marker in _iter_marked_fields(resource_or_cls, Ref)}
