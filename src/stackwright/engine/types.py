"""Engine types (changes, diffs, plans, results)."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from stackwright.resources.kinds import ResourceKind


class Action(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"
    RETAIN = "retain"
    NOOP = "no-op"


class ResourceChange(BaseModel):
    name: str
    kind: ResourceKind
    action: Action
    fingerprint: str | None = None
    prior_fingerprint: str | None = None
    identity_fingerprint: str | None = None
    replacement: bool = False
    identifier: str | None = None
    dependencies: list[str] = Field(default_factory=list)
    config: dict[str, Any] | None = None


class Diff(BaseModel):
    """Desired model vs. persisted state, classified per resource.

    ``retained`` holds stateful resources that disappeared from the
    declarations: they are reported but never deleted by a deploy.
    """

    to_create: list[ResourceChange] = Field(default_factory=list)
    to_update: list[ResourceChange] = Field(default_factory=list)
    to_delete: list[ResourceChange] = Field(default_factory=list)
    unchanged: list[ResourceChange] = Field(default_factory=list)
    retained: list[ResourceChange] = Field(default_factory=list)

    @property
    def changes(self) -> list[ResourceChange]:
        return [
            *self.to_create,
            *self.to_update,
            *self.to_delete,
            *self.unchanged,
            *self.retained,
        ]

    @property
    def is_empty(self) -> bool:
        """True when applying would issue no provider call."""
        return not (self.to_create or self.to_update or self.to_delete)

    def summary(self) -> dict[str, int]:
        counts = {a.value: 0 for a in Action}
        for c in self.changes:
            counts[c.action.value] += 1
        return counts


class PlanMetadata(BaseModel):
    project: str
    stage: str
    region: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    state_lineage: str
    state_serial: int
    engine_version: str


class Plan(BaseModel):
    """A diff plus the dependency-ordered list of changes to apply."""

    metadata: PlanMetadata
    diff: Diff
    order: list[str] = Field(default_factory=list)

    @property
    def changes(self) -> list[ResourceChange]:
        by_name = {c.name: c for c in self.diff.changes}
        ordered = [by_name[n] for n in self.order if n in by_name]
        seen = {c.name for c in ordered}
        return ordered + [c for c in self.diff.changes if c.name not in seen]

    def summary(self) -> dict[str, int]:
        return self.diff.summary()

    def save(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(mode="json")
        path.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> Plan:
        path = Path(path)
        return cls.model_validate_json(path.read_text(encoding="utf-8"))


class ResourceFailure(BaseModel):
    """Why one resource did not reach its target state."""

    name: str
    kind: ResourceKind
    error_class: str
    message: str
    state_mutated: bool = False

    @classmethod
    def from_exception(
        cls, name: str, kind: ResourceKind, exc: BaseException, *, state_mutated: bool = False
    ) -> ResourceFailure:
        return cls(
            name=name,
            kind=kind,
            error_class=type(exc).__name__,
            message=str(exc),
            state_mutated=state_mutated,
        )


class DeploymentResult(BaseModel):
    created: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)
    unchanged: list[str] = Field(default_factory=list)
    retained: list[str] = Field(default_factory=list)
    failed: list[ResourceFailure] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed

    @property
    def state_mutated(self) -> bool:
        return bool(self.created or self.updated or self.deleted)

    def summary(self) -> dict[str, int]:
        return {
            "create": len(self.created),
            "update": len(self.updated),
            "delete": len(self.deleted),
            "no-op": len(self.unchanged),
            "retain": len(self.retained),
            "failed": len(self.failed),
        }


class DestroyResult(BaseModel):
    deleted: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    failed: list[ResourceFailure] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed

    def summary(self) -> dict[str, int]:
        return {
            "delete": len(self.deleted),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
        }
