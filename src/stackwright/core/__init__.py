"""Deployment state and its backends."""

from stackwright.core.local import LocalStateStore
from stackwright.core.s3 import S3StateStore
from stackwright.core.state import DeploymentState, StateEntry, deployment_key
from stackwright.core.store import StateStore

__all__ = [
    "DeploymentState",
    "LocalStateStore",
    "S3StateStore",
    "StateEntry",
    "StateStore",
    "deployment_key",
]
