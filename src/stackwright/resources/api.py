"""HTTP API resource models: APIs, routes and authorizers."""

from __future__ import annotations

from typing import Annotated, ClassVar, Literal

from pydantic import Field

from stackwright.resources.base import Resource
from stackwright.resources.kinds import ResourceKind
from stackwright.resources.markers import Ref

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS", "ANY"]


class HttpApiResource(Resource):
    """An HTTP API front door. Routes and authorizers attach to it."""

    kind: ClassVar[ResourceKind] = ResourceKind.HTTP_API
    identity_fields: ClassVar[tuple[str, ...]] = ("protocol",)

    description: str = ""
    protocol: Literal["HTTP", "REST"] = "REST"
    cors_origins: list[str] = Field(default_factory=list)


class AuthorizerResource(Resource):
    """A request authorizer backed by a compute unit."""

    kind: ClassVar[ResourceKind] = ResourceKind.AUTHORIZER

    api: Annotated[str, Ref(ResourceKind.HTTP_API)]
    handler: Annotated[str, Ref(ResourceKind.COMPUTE_UNIT)]
    identity_source: str = "method.request.header.Authorization"
    ttl_seconds: int = Field(default=300, ge=0, le=3600)


class RouteResource(Resource):
    """A single method + path on an API, dispatching to a compute unit."""

    kind: ClassVar[ResourceKind] = ResourceKind.ROUTE

    api: Annotated[str, Ref(ResourceKind.HTTP_API)]
    method: HttpMethod = "GET"
    path: str = Field(pattern=r"^/")
    handler: Annotated[str, Ref(ResourceKind.COMPUTE_UNIT)]
    authorizer: Annotated[str | None, Ref(ResourceKind.AUTHORIZER)] = None
    role: Annotated[str | None, Ref(ResourceKind.ROLE)] = None
