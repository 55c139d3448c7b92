"""Execution role resource model and permission statements."""

from __future__ import annotations

from typing import Annotated, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stackwright.resources.base import Resource
from stackwright.resources.kinds import DATA_KINDS, ResourceKind
from stackwright.resources.markers import Ref


class PermissionStatement(BaseModel):
    """One policy statement. Actions are kept sorted and de-duplicated."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    effect: Literal["Allow", "Deny"] = "Allow"
    actions: tuple[str, ...]
    resource_pattern: str

    @field_validator("actions")
    @classmethod
    def _sorted_unique(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            raise ValueError("a statement needs at least one action")
        return tuple(sorted(set(v)))

    @property
    def merge_key(self) -> tuple[str, str]:
        return (self.effect, self.resource_pattern)


class RoleResource(Resource):
    """An execution role derived from the compute units that assume it.

    Roles are never declared by hand: the builder derives one per role name
    and the permission synthesizer fills in ``statements``.
    """

    kind: ClassVar[ResourceKind] = ResourceKind.ROLE

    trust_service: str = "lambda.amazonaws.com"
    members: list[str] = Field(default_factory=list)
    grants: Annotated[list[str], Ref(*sorted(DATA_KINDS))] = Field(default_factory=list)
    statements: list[PermissionStatement] = Field(default_factory=list)
