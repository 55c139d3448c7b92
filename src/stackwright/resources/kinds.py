"""Resource kinds and the kind-level dependency rules."""

from __future__ import annotations

from enum import Enum


class ResourceKind(str, Enum):
    HTTP_API = "HttpApi"
    ROUTE = "Route"
    AUTHORIZER = "Authorizer"
    TABLE = "Table"
    BUCKET = "Bucket"
    QUEUE = "Queue"
    TIMER = "Timer"
    RELATIONAL_DATABASE = "RelationalDatabase"
    SECRET = "Secret"
    PARAMETER = "Parameter"
    ROLE = "Role"
    COMPUTE_UNIT = "ComputeUnit"


# Deleting one of these destroys durable data.
STATEFUL_KINDS: frozenset[ResourceKind] = frozenset(
    {
        ResourceKind.TABLE,
        ResourceKind.BUCKET,
        ResourceKind.QUEUE,
        ResourceKind.RELATIONAL_DATABASE,
        ResourceKind.SECRET,
    }
)

# Kinds a compute unit may read or write at runtime.
DATA_KINDS: frozenset[ResourceKind] = frozenset(
    {
        ResourceKind.TABLE,
        ResourceKind.BUCKET,
        ResourceKind.QUEUE,
        ResourceKind.RELATIONAL_DATABASE,
        ResourceKind.SECRET,
        ResourceKind.PARAMETER,
    }
)

# kind -> kinds it may depend on (be created after / destroyed before).
KIND_DEPENDENCIES: dict[ResourceKind, frozenset[ResourceKind]] = {
    ResourceKind.TABLE: frozenset(),
    ResourceKind.BUCKET: frozenset(),
    ResourceKind.QUEUE: frozenset({ResourceKind.QUEUE}),
    ResourceKind.RELATIONAL_DATABASE: frozenset(),
    ResourceKind.SECRET: frozenset(),
    ResourceKind.PARAMETER: frozenset(),
    ResourceKind.HTTP_API: frozenset(),
    ResourceKind.ROLE: DATA_KINDS,
    ResourceKind.COMPUTE_UNIT: DATA_KINDS | {ResourceKind.ROLE},
    ResourceKind.AUTHORIZER: frozenset(
        {ResourceKind.HTTP_API, ResourceKind.COMPUTE_UNIT, ResourceKind.ROLE}
    ),
    ResourceKind.ROUTE: frozenset(
        {
            ResourceKind.HTTP_API,
            ResourceKind.COMPUTE_UNIT,
            ResourceKind.AUTHORIZER,
            ResourceKind.ROLE,
        }
    ),
    ResourceKind.TIMER: frozenset({ResourceKind.COMPUTE_UNIT, ResourceKind.ROLE}),
}


def is_stateful(kind: ResourceKind | str) -> bool:
    return ResourceKind(kind) in STATEFUL_KINDS
