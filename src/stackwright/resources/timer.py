"""Scheduled trigger resource model."""

from __future__ import annotations

from typing import Annotated, ClassVar

from pydantic import Field

from stackwright.resources.base import Resource
from stackwright.resources.kinds import ResourceKind
from stackwright.resources.markers import Ref


class TimerResource(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.TIMER

    schedule: str = Field(pattern=r"^(rate|cron)\(.+\)$")
    handler: Annotated[str, Ref(ResourceKind.COMPUTE_UNIT)]
    enabled: bool = True
