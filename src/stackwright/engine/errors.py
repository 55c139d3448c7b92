"""Engine error types."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stackwright.engine.types import DeploymentResult


class EngineError(Exception):
    """Base exception for engine errors."""


class ValidationError(EngineError):
    """One or more declarations are malformed. Raised before any provider call."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        msg = "Validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        super().__init__(msg)


class CyclicDependencyError(ValidationError):
    """Raised when resource references form a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        path = " -> ".join(cycle) if cycle else "unknown"
        super().__init__([f"Dependency cycle detected: {path}"])


class DuplicateNameError(ValidationError):
    """Raised when multiple declared resources share the same name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__([f"Duplicate resource name: {name}"])


class KindChangeError(ValidationError):
    """Declared names whose kind differs from the kind recorded in state.

    Adapters are per kind, so neither the old nor the new adapter can move a
    resource across kinds.
    """

    def __init__(self, changes: list[tuple[str, str, str]]) -> None:
        self.changes = changes
        super().__init__(
            [
                f"'{name}' is recorded as {old} but declared as {new}; destroy it or "
                "declare the new resource under another name"
                for name, old, new in changes
            ]
        )


class UnknownResourceKindError(EngineError):
    """Raised when a resource kind has no registered provider adapter."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"No provider adapter registered for kind: {kind}")
        self.kind = kind


class ConcurrentDeploymentError(EngineError):
    """Raised when another run already holds the lease for a deployment key."""

    def __init__(self, key: str, holder: str | None = None) -> None:
        msg = f"Another deploy/destroy run holds the lease for {key}"
        if holder:
            msg += f" (held by {holder})"
        super().__init__(msg)
        self.key = key
        self.holder = holder


class StateLeaseError(EngineError):
    """Raised when the state is written without holding the lease."""


class StateCorruptionError(EngineError):
    """Raised when persisted state cannot be interpreted."""


class ProviderError(EngineError):
    """Base class for errors raised by provider adapters."""


class TransientProviderError(ProviderError):
    """Retryable provider failure (throttling, rate limiting, network blips)."""


class PermanentProviderError(ProviderError):
    """Non-retryable provider failure (validation, name conflicts, access denied)."""


class ReplacementRequiredError(PermanentProviderError):
    """An identity-bearing field changed and the adapter cannot replace in place."""

    def __init__(self, name: str, kind: str) -> None:
        super().__init__(
            f"{kind} '{name}' changed an identity-bearing field and requires replacement; "
            "destroy the resource explicitly or restore the previous value"
        )
        self.name = name
        self.kind = kind


class RetryExhaustedError(PermanentProviderError):
    """A transient failure persisted past the retry ceiling."""

    def __init__(self, attempts: int, last: BaseException) -> None:
        super().__init__(f"Gave up after {attempts} attempts: {last}")
        self.attempts = attempts
        self.last = last


class BlockedByDependentError(EngineError):
    """A resource was not deleted because something that depends on it still exists."""

    def __init__(self, name: str, dependents: list[str]) -> None:
        super().__init__(
            f"Not deleted: {name} is still required by {', '.join(sorted(dependents))}"
        )
        self.name = name
        self.dependents = dependents


class ApplyError(EngineError):
    """Raised when an apply stops on a permanent failure.

    Carries the partial result (what was committed before the failure) so
    callers can inspect progress.  The original exception is chained via
    ``__cause__``.
    """

    def __init__(self, *, result: DeploymentResult, name: str, kind: str, message: str) -> None:
        self.result = result
        self.name = name
        self.kind = kind
        super().__init__(f"Apply failed on {kind} '{name}': {message}")


class ApplyCanceled(EngineError):
    """Raised when a run is canceled (e.g., Ctrl-C)."""
