"""Declared resource definitions.

``StackBuilder`` lives in ``stackwright.resources.builder``; it depends on the
engine's synthesis and validation passes, which themselves import from here.
"""

from stackwright.resources.api import AuthorizerResource, HttpApiResource, RouteResource
from stackwright.resources.base import Resource
from stackwright.resources.bucket import BucketResource
from stackwright.resources.compute import ComputeUnitResource
from stackwright.resources.database import RelationalDatabaseResource
from stackwright.resources.kinds import (
    DATA_KINDS,
    KIND_DEPENDENCIES,
    STATEFUL_KINDS,
    ResourceKind,
    is_stateful,
)
from stackwright.resources.markers import Ref, ResourceRef
from stackwright.resources.model import ResourceModel
from stackwright.resources.queue import QueueResource
from stackwright.resources.role import PermissionStatement, RoleResource
from stackwright.resources.secret import ParameterResource, SecretResource
from stackwright.resources.table import KeyAttribute, TableResource
from stackwright.resources.timer import TimerResource

RESOURCE_CLASSES: dict[ResourceKind, type[Resource]] = {
    cls.kind: cls
    for cls in (
        HttpApiResource,
        RouteResource,
        AuthorizerResource,
        TableResource,
        BucketResource,
        QueueResource,
        TimerResource,
        RelationalDatabaseResource,
        SecretResource,
        ParameterResource,
        RoleResource,
        ComputeUnitResource,
    )
}

__all__ = [
    "DATA_KINDS",
    "KIND_DEPENDENCIES",
    "RESOURCE_CLASSES",
    "STATEFUL_KINDS",
    "AuthorizerResource",
    "BucketResource",
    "ComputeUnitResource",
    "HttpApiResource",
    "KeyAttribute",
    "ParameterResource",
    "PermissionStatement",
    "QueueResource",
    "Ref",
    "RelationalDatabaseResource",
    "Resource",
    "ResourceKind",
    "ResourceModel",
    "ResourceRef",
    "RoleResource",
    "RouteResource",
    "SecretResource",
    "TableResource",
    "TimerResource",
    "is_stateful",
]
