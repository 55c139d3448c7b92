"""Key-value table resource model."""

from __future__ import annotations

from typing import ClassVar, Literal

from pydantic import BaseModel, ConfigDict

from stackwright.resources.base import Resource
from stackwright.resources.kinds import ResourceKind


class KeyAttribute(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    type: Literal["S", "N", "B"] = "S"


class TableResource(Resource):
    """A key-value table.

    The key schema is identity-bearing: changing it requires replacing the
    table, which destroys its data.
    """

    kind: ClassVar[ResourceKind] = ResourceKind.TABLE
    identity_fields: ClassVar[tuple[str, ...]] = ("partition_key", "sort_key")

    partition_key: KeyAttribute = KeyAttribute(name="id")
    sort_key: KeyAttribute | None = None
    billing_mode: Literal["PAY_PER_REQUEST", "PROVISIONED"] = "PAY_PER_REQUEST"
    ttl_attribute: str | None = None
    point_in_time_recovery: bool = False
