"""Compute unit resource model."""

from __future__ import annotations

from typing import Annotated, ClassVar

from pydantic import Field

from stackwright.resources.base import Resource
from stackwright.resources.kinds import DATA_KINDS, ResourceKind
from stackwright.resources.markers import Ref


class ComputeUnitResource(Resource):
    """Executable logic: a route handler, queue worker, timer target or authorizer.

    ``handler`` is an opaque artifact reference handed to the provider adapter;
    the engine never loads or runs it.  ``uses`` lists the data resources the
    code touches at runtime and drives both permission synthesis and
    environment injection.
    """

    kind: ClassVar[ResourceKind] = ResourceKind.COMPUTE_UNIT

    handler: str = Field(min_length=1)
    runtime: str = "python3.12"
    memory_mb: int = Field(default=128, ge=128, le=10240)
    timeout_seconds: int = Field(default=30, ge=1, le=900)
    environment: dict[str, str] = Field(default_factory=dict)
    uses: Annotated[list[str], Ref(*sorted(DATA_KINDS))] = Field(default_factory=list)
    role: Annotated[str | None, Ref(ResourceKind.ROLE)] = None
    subscribes_to: Annotated[str | None, Ref(ResourceKind.QUEUE)] = None
    batch_size: int = Field(default=10, ge=1, le=10000)
    tracing: bool = False
