"""Secret and parameter resource models."""

from __future__ import annotations

from typing import ClassVar, Literal

from pydantic import Field

from stackwright.resources.base import Resource
from stackwright.resources.kinds import ResourceKind


class SecretResource(Resource):
    """A managed secret. Its value is set out of band and never tracked here."""

    kind: ClassVar[ResourceKind] = ResourceKind.SECRET

    description: str = ""
    kms_key_id: str | None = None
    recovery_window_days: int = Field(default=30, ge=7, le=30)


class ParameterResource(Resource):
    """A configuration parameter whose value is declared inline."""

    kind: ClassVar[ResourceKind] = ResourceKind.PARAMETER

    value: str
    parameter_type: Literal["String", "StringList", "SecureString"] = "String"
    tier: Literal["Standard", "Advanced"] = "Standard"
    description: str = ""
