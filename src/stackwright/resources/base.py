"""Base resource class for declared cloud resources."""

from __future__ import annotations

import hashlib
import json
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from stackwright.resources.kinds import ResourceKind, is_stateful
from stackwright.resources.markers import ResourceRef, collect_ref_specs, collect_refs


def canonical_json(obj: Any) -> str:
    # Stable encoding for hashes; `default=str` keeps enums/paths deterministic.
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)


def sha256_hex(payload: str) -> str:
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class Resource(BaseModel):
    """Base class for all declared resources.

    Resources are pure, immutable data describing the desired state.
    Provider adapters know how to create, update and delete them.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: ClassVar[ResourceKind]
    identity_fields: ClassVar[tuple[str, ...]] = ()

    name: str = Field(pattern=r"^[a-zA-Z][a-zA-Z0-9_-]*$", max_length=64)

    @property
    def stateful(self) -> bool:
        return is_stateful(self.kind)

    def reference_names(self) -> list[str]:
        """Names of other resources this one references (auto-collected from Ref markers)."""
        return collect_refs(self)

    def references(self) -> list[ResourceRef]:
        """Typed references declared on this resource."""
        return collect_ref_specs(self)

    def config(self) -> dict[str, Any]:
        """Kind-specific attributes, as passed to provider adapters."""
        return self.model_dump(mode="json", exclude={"name"})

    @property
    def fingerprint(self) -> str:
        """Deterministic hash of config plus references, used for change detection."""
        return sha256_hex(
            canonical_json(
                {
                    "kind": self.kind.value,
                    "config": self.config(),
                    "references": sorted(self.reference_names()),
                }
            )
        )

    @property
    def identity_fingerprint(self) -> str:
        """Hash of the identity-bearing fields only; a change forces replacement."""
        config = self.config()
        identity = {f: config.get(f) for f in self.identity_fields}
        return sha256_hex(canonical_json({"kind": self.kind.value, "identity": identity}))
