"""Message queue resource model."""

from __future__ import annotations

from typing import Annotated, ClassVar, Self

from pydantic import Field, model_validator

from stackwright.resources.base import Resource
from stackwright.resources.kinds import ResourceKind
from stackwright.resources.markers import Ref


class QueueResource(Resource):
    """A message queue, optionally draining failures into a dead-letter queue."""

    kind: ClassVar[ResourceKind] = ResourceKind.QUEUE
    identity_fields: ClassVar[tuple[str, ...]] = ("fifo",)

    fifo: bool = False
    visibility_timeout_seconds: int = Field(default=30, ge=0, le=43200)
    message_retention_seconds: int = Field(default=345600, ge=60, le=1209600)
    dead_letter_queue: Annotated[str | None, Ref(ResourceKind.QUEUE)] = None
    max_receive_count: int = Field(default=3, ge=1, le=1000)

    @model_validator(mode="after")
    def _dlq_is_not_self(self) -> Self:
        if self.dead_letter_queue == self.name:
            raise ValueError("dead_letter_queue cannot reference the queue itself")
        return self
