"""Explicit builder that turns declarations into an immutable ``ResourceModel``."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, TypeVar

from stackwright.engine.errors import DuplicateNameError, ValidationError
from stackwright.engine.permissions import ArnContext, synthesize_role
from stackwright.engine.resolver import validate_model
from stackwright.resources.api import AuthorizerResource, HttpApiResource, RouteResource
from stackwright.resources.bucket import BucketResource
from stackwright.resources.compute import ComputeUnitResource
from stackwright.resources.database import RelationalDatabaseResource
from stackwright.resources.kinds import DATA_KINDS, ResourceKind
from stackwright.resources.model import ResourceModel
from stackwright.resources.queue import QueueResource
from stackwright.resources.role import RoleResource
from stackwright.resources.secret import ParameterResource, SecretResource
from stackwright.resources.table import TableResource
from stackwright.resources.timer import TimerResource

if TYPE_CHECKING:
    from collections.abc import Iterable

    from stackwright.resources.base import Resource

logger = logging.getLogger(__name__)

R = TypeVar("R", bound="Resource")

_PATH_CHARS = re.compile(r"[^a-zA-Z0-9]+")


def route_name(api: str, method: str, path: str) -> str:
    """Default name for a route: ``{api}-{method}-{path slug}``."""
    slug = _PATH_CHARS.sub("-", path).strip("-").lower() or "root"
    return f"{api}-{method.lower()}-{slug}"


class StackBuilder:
    """Collects declarations for one (project, stage, region).

    Examples:
        builder = StackBuilder("shop", "dev", "us-east-1")
        builder.table("users")
        builder.function("get-user", handler="handlers/users.get", uses=["users"])
        model = builder.build()
    """

    def __init__(
        self,
        project: str,
        stage: str,
        region: str,
        *,
        account_id: str = "*",
        default_role: str | None = None,
    ) -> None:
        self.project = project
        self.stage = stage
        self.region = region
        self.account_id = account_id
        self.default_role = default_role or f"{project}-{stage}-role"
        self._resources: list[Resource] = []
        self._built = False

    def add(self, resource: R) -> R:
        if self._built:
            raise RuntimeError("StackBuilder.build() was already called")
        if isinstance(resource, RoleResource):
            raise ValidationError(
                [f"Role '{resource.name}' cannot be declared; roles are derived from functions"]
            )
        self._resources.append(resource)
        return resource

    def extend(self, resources: Iterable[Resource]) -> None:
        for r in resources:
            self.add(r)

    # Declaration helpers ------------------------------------------------

    def api(self, name: str, **kwargs: Any) -> HttpApiResource:
        return self.add(HttpApiResource(name=name, **kwargs))

    def route(
        self,
        api: str,
        method: str,
        path: str,
        handler: str,
        *,
        name: str | None = None,
        **kwargs: Any,
    ) -> RouteResource:
        return self.add(
            RouteResource(
                name=name or route_name(api, method, path),
                api=api,
                method=method.upper(),
                path=path,
                handler=handler,
                **kwargs,
            )
        )

    def authorizer(self, name: str, *, api: str, handler: str, **kwargs: Any) -> AuthorizerResource:
        return self.add(AuthorizerResource(name=name, api=api, handler=handler, **kwargs))

    def table(self, name: str, **kwargs: Any) -> TableResource:
        return self.add(TableResource(name=name, **kwargs))

    def bucket(self, name: str, **kwargs: Any) -> BucketResource:
        return self.add(BucketResource(name=name, **kwargs))

    def queue(self, name: str, **kwargs: Any) -> QueueResource:
        return self.add(QueueResource(name=name, **kwargs))

    def timer(self, name: str, *, schedule: str, handler: str, **kwargs: Any) -> TimerResource:
        return self.add(TimerResource(name=name, schedule=schedule, handler=handler, **kwargs))

    def database(self, name: str, **kwargs: Any) -> RelationalDatabaseResource:
        return self.add(RelationalDatabaseResource(name=name, **kwargs))

    def secret(self, name: str, **kwargs: Any) -> SecretResource:
        return self.add(SecretResource(name=name, **kwargs))

    def parameter(self, name: str, *, value: str, **kwargs: Any) -> ParameterResource:
        return self.add(ParameterResource(name=name, value=value, **kwargs))

    def function(self, name: str, *, handler: str, **kwargs: Any) -> ComputeUnitResource:
        return self.add(ComputeUnitResource(name=name, handler=handler, **kwargs))

    # Snapshot -----------------------------------------------------------

    def _derive_roles(self, resources: list[Resource]) -> list[Resource]:
        """Assign default roles and append one derived Role per role name."""
        by_name = {r.name: r for r in resources}
        members: dict[str, list[ComputeUnitResource]] = {}
        out: list[Resource] = []
        for r in resources:
            if isinstance(r, ComputeUnitResource):
                if r.role is None:
                    r = r.model_copy(update={"role": self.default_role})
                members.setdefault(r.role, []).append(r)  # type: ignore[arg-type]
            out.append(r)

        ctx = ArnContext(self.project, self.stage, self.region, self.account_id)
        for role_name, computes in members.items():
            grants: dict[str, None] = {}
            for c in computes:
                for ref in [*c.uses, c.subscribes_to]:
                    target = by_name.get(ref) if ref else None
                    if target is None or target.kind not in DATA_KINDS:
                        continue
                    grants.setdefault(target.name)
                    dlq = getattr(target, "dead_letter_queue", None)
                    if dlq and dlq in by_name:
                        grants.setdefault(dlq)
            out.append(
                RoleResource(
                    name=role_name,
                    members=[c.name for c in computes],
                    grants=list(grants),
                    statements=synthesize_role(computes, by_name, ctx),
                )
            )
            logger.debug("Derived role %s for %d compute unit(s)", role_name, len(computes))
        return out

    def build(self) -> ResourceModel:
        """Validate declarations and return the immutable model.

        Raises:
            ValidationError: On duplicate names, dangling or ill-typed
                references, or dependency cycles.
        """
        if self._built:
            raise RuntimeError("StackBuilder.build() was already called")
        self._built = True

        seen: set[str] = set()
        for r in self._resources:
            if r.name in seen:
                raise DuplicateNameError(r.name)
            seen.add(r.name)

        resources = self._derive_roles(list(self._resources))
        for role in (r for r in resources if r.kind == ResourceKind.ROLE):
            if role.name in seen:
                raise ValidationError(
                    [f"Role name '{role.name}' collides with a declared resource"]
                )
        validate_model(resources)

        model = ResourceModel(
            project=self.project,
            stage=self.stage,
            region=self.region,
            account_id=self.account_id,
            resources=tuple(resources),
        )
        logger.info("Built resource model %s with %d resources", model.key, len(model))
        return model
