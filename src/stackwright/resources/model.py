"""Immutable resource model snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING

from stackwright.engine.errors import DuplicateNameError

if TYPE_CHECKING:
    from stackwright.resources.base import Resource
    from stackwright.resources.kinds import ResourceKind


@dataclass(frozen=True)
class ResourceModel:
    """The complete desired resource set for one (project, stage, region).

    Built fresh on every invocation (see ``StackBuilder``) and never mutated.
    Declaration order is preserved; it is the tie-break for ordering.
    """

    project: str
    stage: str
    region: str
    resources: tuple[Resource, ...]
    account_id: str = "*"

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for r in self.resources:
            if r.name in seen:
                raise DuplicateNameError(r.name)
            seen.add(r.name)

    @cached_property
    def _by_name(self) -> dict[str, Resource]:
        return {r.name: r for r in self.resources}

    @property
    def key(self) -> str:
        return f"{self.project}/{self.stage}/{self.region}"

    @property
    def names(self) -> list[str]:
        return [r.name for r in self.resources]

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self.resources)

    def get(self, name: str) -> Resource:
        return self._by_name[name]

    def by_kind(self, kind: ResourceKind) -> list[Resource]:
        return [r for r in self.resources if r.kind == kind]

    def dependencies(self) -> dict[str, list[str]]:
        from stackwright.engine.resolver import resolve_dependencies

        return resolve_dependencies(self.resources)

    def order(self) -> list[str]:
        """Creation order: dependencies first, declaration order as tie-break."""
        from stackwright.engine.resolver import dependency_order

        return dependency_order(self.resources)
