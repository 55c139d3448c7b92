"""Relational database resource model."""

from __future__ import annotations

from typing import ClassVar, Literal

from stackwright.resources.base import Resource
from stackwright.resources.kinds import ResourceKind


class RelationalDatabaseResource(Resource):
    """A serverless relational database cluster."""

    kind: ClassVar[ResourceKind] = ResourceKind.RELATIONAL_DATABASE
    identity_fields: ClassVar[tuple[str, ...]] = ("engine",)

    engine: Literal["postgres", "mysql", "dsql"] = "dsql"
    schema_name: str = "public"
    deletion_protection: bool = True
