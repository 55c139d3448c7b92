"""Plan, deploy and destroy engine."""

from stackwright.engine.adapters import AdapterRegistry, EngineContext, ProviderAdapter
from stackwright.engine.apply import ApplyEngine
from stackwright.engine.destroy import DestroyEngine
from stackwright.engine.diff import diff
from stackwright.engine.engine import StackEngine
from stackwright.engine.errors import (
    ApplyCanceled,
    ApplyError,
    BlockedByDependentError,
    ConcurrentDeploymentError,
    CyclicDependencyError,
    DuplicateNameError,
    EngineError,
    PermanentProviderError,
    ProviderError,
    ReplacementRequiredError,
    RetryExhaustedError,
    StateCorruptionError,
    StateLeaseError,
    TransientProviderError,
    UnknownResourceKindError,
    ValidationError,
)
from stackwright.engine.graph import DependencyGraph
from stackwright.engine.retry import RetryPolicy, classify_client_error, is_transient
from stackwright.engine.scheduler import GraphScheduler
from stackwright.engine.types import (
    Action,
    DeploymentResult,
    DestroyResult,
    Diff,
    Plan,
    PlanMetadata,
    ResourceChange,
    ResourceFailure,
)

__all__ = [
    "Action",
    "AdapterRegistry",
    "ApplyCanceled",
    "ApplyEngine",
    "ApplyError",
    "BlockedByDependentError",
    "ConcurrentDeploymentError",
    "CyclicDependencyError",
    "DependencyGraph",
    "DeploymentResult",
    "DestroyEngine",
    "DestroyResult",
    "Diff",
    "DuplicateNameError",
    "EngineContext",
    "EngineError",
    "GraphScheduler",
    "PermanentProviderError",
    "Plan",
    "PlanMetadata",
    "ProviderAdapter",
    "ProviderError",
    "ReplacementRequiredError",
    "ResourceChange",
    "ResourceFailure",
    "RetryExhaustedError",
    "RetryPolicy",
    "StackEngine",
    "StateCorruptionError",
    "StateLeaseError",
    "TransientProviderError",
    "UnknownResourceKindError",
    "ValidationError",
    "classify_client_error",
    "diff",
    "is_transient",
]
