"""Deployment state: the durable record of what exists in the target account."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from stackwright.engine.errors import StateCorruptionError
from stackwright.resources.kinds import ResourceKind

logger = logging.getLogger(__name__)


def deployment_key(project: str, stage: str, region: str) -> str:
    return f"{project}/{stage}/{region}"


def _now() -> datetime:
    return datetime.now(UTC)


class StateEntry(BaseModel):
    """A committed resource.

    Attributes:
        name: Logical resource name (unique within the deployment)
        kind: Resource kind
        identifier: Provider identifier (ARN, ID or URL)
        fingerprint: Fingerprint of the config last applied successfully
        identity_fingerprint: Fingerprint of the identity-bearing fields
        dependencies: Names this resource depended on when it was applied
        created_at: When the resource was created
        updated_at: When the resource was last updated
    """

    name: str
    kind: ResourceKind
    identifier: str = Field(min_length=1)
    fingerprint: str
    identity_fingerprint: str = ""
    dependencies: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class DeploymentState(BaseModel):
    """State document for one (project, stage, region).

    Attributes:
        version: State document format version
        serial: Incremented on every write
        lineage: Stable id for the life of this deployment
        last_run_id: Id of the run that last wrote the document
        resources: Mapping of resource names to committed entries
    """

    version: int = 1
    project: str
    stage: str
    region: str
    serial: int = 0
    lineage: str = Field(default_factory=lambda: str(uuid.uuid4()))
    last_run_id: str | None = None
    resources: dict[str, StateEntry] = Field(default_factory=dict)

    @property
    def key(self) -> str:
        return deployment_key(self.project, self.stage, self.region)

    @property
    def is_empty(self) -> bool:
        return not self.resources

    def to_json(self) -> str:
        return self.model_dump_json(indent=2) + "\n"

    @classmethod
    def from_json(cls, payload: str | bytes, *, expected_key: str | None = None) -> DeploymentState:
        """Parse a state document.

        Raises:
            StateCorruptionError: If the document does not parse, an entry
                carries an unknown kind, or the document belongs elsewhere.
        """
        try:
            state = cls.model_validate_json(payload)
        except PydanticValidationError as exc:
            raise StateCorruptionError(f"Unreadable state document: {exc}") from exc
        if expected_key is not None and state.key != expected_key:
            raise StateCorruptionError(
                f"State document key mismatch: expected {expected_key}, got {state.key}"
            )
        for name, entry in state.resources.items():
            if entry.name != name:
                raise StateCorruptionError(
                    f"State entry '{name}' records a different name '{entry.name}'"
                )
        return state
