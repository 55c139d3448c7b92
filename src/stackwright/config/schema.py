"""Configuration models for YAML-based declarations."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any, Literal, Self

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from stackwright.resources.api import (
    AuthorizerResource,  # noqa: TC001 - Pydantic needs this at runtime
    HttpApiResource,  # noqa: TC001 - Pydantic needs this at runtime
    RouteResource,
)
from stackwright.resources.base import Resource  # noqa: TC001 - Pydantic needs this at runtime
from stackwright.resources.bucket import (
    BucketResource,  # noqa: TC001 - Pydantic needs this at runtime
)
from stackwright.resources.builder import StackBuilder, route_name
from stackwright.resources.compute import (
    ComputeUnitResource,  # noqa: TC001 - Pydantic needs this at runtime
)
from stackwright.resources.database import (
    RelationalDatabaseResource,  # noqa: TC001 - Pydantic needs this at runtime
)
from stackwright.resources.queue import (
    QueueResource,  # noqa: TC001 - Pydantic needs this at runtime
)
from stackwright.resources.secret import (
    ParameterResource,  # noqa: TC001 - Pydantic needs this at runtime
    SecretResource,  # noqa: TC001 - Pydantic needs this at runtime
)
from stackwright.resources.table import (
    TableResource,  # noqa: TC001 - Pydantic needs this at runtime
)
from stackwright.resources.timer import (
    TimerResource,  # noqa: TC001 - Pydantic needs this at runtime
)

if TYPE_CHECKING:
    from stackwright.resources.model import ResourceModel

_NAME_PATTERN = r"^[a-zA-Z][a-zA-Z0-9_-]*$"


class StackSettings(BaseSettings):
    """Deployment settings.

    Fields can be set via YAML (constructor kwargs) or environment variables
    with the ``STACKWRIGHT_`` prefix.  Constructor kwargs take precedence.
    """

    model_config = SettingsConfigDict(env_prefix="STACKWRIGHT_", extra="ignore")

    region: str | None = None
    stage: str = Field(default="dev", pattern=_NAME_PATTERN)
    account_id: str = "*"
    adapters: str | None = None
    max_workers: int = Field(default=1, ge=1, le=64)
    state_backend: Literal["local", "s3"] = "local"
    state_path: Path = Path(".stackwright")
    state_bucket: str | None = None
    state_prefix: str = ""

    @model_validator(mode="after")
    def _s3_needs_bucket(self) -> Self:
        if self.state_backend == "s3" and not self.state_bucket:
            raise ValueError("state.bucket is required for the s3 state backend")
        return self


def _none_to_list(v: Any) -> Any:
    return v if v is not None else []


def _default_route_name(v: Any) -> Any:
    if isinstance(v, dict) and not v.get("name") and {"api", "path"} <= v.keys():
        v = {**v, "name": route_name(v["api"], str(v.get("method", "GET")), v["path"])}
    if isinstance(v, dict) and isinstance(v.get("method"), str):
        v = {**v, "method": v["method"].upper()}
    return v


_RouteEntry = Annotated[RouteResource, BeforeValidator(_default_route_name)]


class Config(BaseModel):
    """Declarations for one project, validated directly from YAML."""

    model_config = ConfigDict(extra="forbid")

    project: str = Field(pattern=_NAME_PATTERN)
    settings: StackSettings = Field(default_factory=StackSettings)
    default_role: str | None = Field(default=None, pattern=_NAME_PATTERN)

    apis: Annotated[list[HttpApiResource], BeforeValidator(_none_to_list)] = []
    tables: Annotated[list[TableResource], BeforeValidator(_none_to_list)] = []
    buckets: Annotated[list[BucketResource], BeforeValidator(_none_to_list)] = []
    queues: Annotated[list[QueueResource], BeforeValidator(_none_to_list)] = []
    databases: Annotated[list[RelationalDatabaseResource], BeforeValidator(_none_to_list)] = []
    secrets: Annotated[list[SecretResource], BeforeValidator(_none_to_list)] = []
    parameters: Annotated[list[ParameterResource], BeforeValidator(_none_to_list)] = []
    functions: Annotated[list[ComputeUnitResource], BeforeValidator(_none_to_list)] = []
    authorizers: Annotated[list[AuthorizerResource], BeforeValidator(_none_to_list)] = []
    routes: Annotated[list[_RouteEntry], BeforeValidator(_none_to_list)] = []
    timers: Annotated[list[TimerResource], BeforeValidator(_none_to_list)] = []

    config_dir: Path = Path()

    @property
    def stage(self) -> str:
        return self.settings.stage

    @property
    def region(self) -> str | None:
        return self.settings.region

    @property
    def resources(self) -> list[Resource]:
        """All declared resources, data first; roles are derived at build time."""
        return [
            *self.tables,
            *self.buckets,
            *self.queues,
            *self.databases,
            *self.secrets,
            *self.parameters,
            *self.apis,
            *self.functions,
            *self.authorizers,
            *self.routes,
            *self.timers,
        ]

    @property
    def state_path(self) -> Path:
        path = self.settings.state_path
        return path if path.is_absolute() else self.config_dir / path

    def build_model(self) -> ResourceModel:
        """Run the declarations through ``StackBuilder``.

        Raises:
            ValueError: If no region is configured.
            ValidationError: On invalid references or cycles.
        """
        if not self.settings.region:
            raise ValueError("region is required (set in YAML or STACKWRIGHT_REGION env var)")
        builder = StackBuilder(
            self.project,
            self.settings.stage,
            self.settings.region,
            account_id=self.settings.account_id,
            default_role=self.default_role,
        )
        builder.extend(self.resources)
        return builder.build()
