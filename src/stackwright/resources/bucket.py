"""Object storage bucket resource model."""

from __future__ import annotations

from typing import ClassVar

from pydantic import Field

from stackwright.resources.base import Resource
from stackwright.resources.kinds import ResourceKind


class BucketResource(Resource):
    kind: ClassVar[ResourceKind] = ResourceKind.BUCKET

    versioning: bool = False
    public_read: bool = False
    cors_origins: list[str] = Field(default_factory=list)
