"""Provider adapter interface and the kind -> adapter registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from stackwright.engine.errors import ReplacementRequiredError, UnknownResourceKindError
from stackwright.engine.permissions import ArnContext
from stackwright.resources.kinds import ResourceKind
from stackwright.resources.naming import parameter_path, physical_name

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from stackwright.resources.base import Resource


@dataclass(frozen=True)
class EngineContext:
    """Context passed to provider adapters."""

    project: str
    stage: str
    region: str
    account_id: str = "*"

    @property
    def key(self) -> str:
        return f"{self.project}/{self.stage}/{self.region}"

    def physical_name(self, name: str) -> str:
        return physical_name(self.project, self.stage, name)

    def parameter_path(self, name: str) -> str:
        return parameter_path(self.project, self.stage, name)

    def arns(self) -> ArnContext:
        return ArnContext(
            project=self.project,
            stage=self.stage,
            region=self.region,
            account_id=self.account_id,
        )


class ProviderAdapter:
    """Base class for per-kind provider adapters.

    Adapters translate resource configs into cloud API calls.  Subclass and
    override the CRUD methods; ``validate`` is optional.  Raise
    ``TransientProviderError`` for retryable failures and
    ``PermanentProviderError`` for everything that re-running will not fix
    (``classify_client_error`` does this for botocore errors).

    The ``config`` passed to ``create``/``update``/``replace`` is the
    resource's own config plus ``name``, ``physical_name`` and ``refs``
    (referenced name -> committed identifier); compute units also receive the
    injected ``environment``.
    """

    def validate(self, ctx: EngineContext, resource: Resource) -> list[str]:
        """Pre-flight check run before any provider call.

        Return list of error messages (empty = valid).
        """
        _ = ctx, resource
        return []

    def create(self, ctx: EngineContext, config: dict[str, Any]) -> str:
        """Create the resource. Return its provider identifier (ARN, ID or URL)."""
        raise NotImplementedError

    def update(self, ctx: EngineContext, identifier: str, config: dict[str, Any]) -> str:
        """Update the resource in place. Return its (possibly new) identifier."""
        raise NotImplementedError

    def delete(self, ctx: EngineContext, identifier: str) -> None:
        """Delete the resource. Deleting something already gone must succeed."""
        raise NotImplementedError

    def replace(self, ctx: EngineContext, identifier: str, config: dict[str, Any]) -> str:
        """Replace a resource whose identity-bearing fields changed.

        The default refuses, so nothing is silently destroyed; adapters that
        can recreate safely override this.
        """
        _ = ctx, identifier
        raise ReplacementRequiredError(str(config.get("name", "?")), str(config.get("kind", "?")))


class AdapterRegistry:
    """Registry mapping resource kind -> provider adapter."""

    def __init__(self) -> None:
        self._adapters: dict[ResourceKind, ProviderAdapter] = {}

    def register(self, kind: ResourceKind | str, adapter: ProviderAdapter) -> None:
        kind = ResourceKind(kind)
        if kind in self._adapters:
            raise ValueError(f"Adapter already registered for kind: {kind.value}")
        self._adapters[kind] = adapter

    def get(self, kind: ResourceKind | str) -> ProviderAdapter:
        try:
            return self._adapters[ResourceKind(kind)]
        except (KeyError, ValueError) as e:
            raise UnknownResourceKindError(str(getattr(kind, "value", kind))) from e

    def require(self, kinds: Iterable[ResourceKind | str]) -> None:
        """Fail before any provider call if some kind has no adapter."""
        for kind in kinds:
            self.get(kind)

    @property
    def kinds(self) -> list[ResourceKind]:
        return list(self._adapters)

    def __contains__(self, kind: object) -> bool:
        try:
            return ResourceKind(kind) in self._adapters  # type: ignore[arg-type]
        except ValueError:
            return False

    def __iter__(self) -> Iterator[tuple[ResourceKind, ProviderAdapter]]:
        return iter(self._adapters.items())
