"""Permission synthesis.

Policies are derived statically from declared references only.  Each data
resource kind contributes statements scoped to that resource's ARN pattern;
statements that share ``(effect, resource_pattern)`` are merged and the
result is sorted, so an unchanged graph always yields the same statements
(and therefore the same role fingerprint).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from stackwright.resources.kinds import ResourceKind
from stackwright.resources.naming import parameter_path, physical_name
from stackwright.resources.role import PermissionStatement

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from stackwright.resources.base import Resource
    from stackwright.resources.compute import ComputeUnitResource

logger = logging.getLogger(__name__)

_TABLE_ACTIONS = (
    "dynamodb:BatchGetItem",
    "dynamodb:BatchWriteItem",
    "dynamodb:DeleteItem",
    "dynamodb:GetItem",
    "dynamodb:PutItem",
    "dynamodb:Query",
    "dynamodb:Scan",
    "dynamodb:UpdateItem",
)
_OBJECT_ACTIONS = ("s3:DeleteObject", "s3:GetObject", "s3:PutObject")
_QUEUE_ACTIONS = (
    "sqs:DeleteMessage",
    "sqs:GetQueueAttributes",
    "sqs:GetQueueUrl",
    "sqs:ReceiveMessage",
    "sqs:SendMessage",
)
_SECRET_ACTIONS = ("secretsmanager:DescribeSecret", "secretsmanager:GetSecretValue")
_PARAMETER_ACTIONS = ("ssm:GetParameter", "ssm:GetParameters")
_LOG_ACTIONS = ("logs:CreateLogGroup", "logs:CreateLogStream", "logs:PutLogEvents")
_TRACING_ACTIONS = ("xray:PutTelemetryRecords", "xray:PutTraceSegments")


@dataclass(frozen=True)
class ArnContext:
    """Where ARN patterns point: project/stage naming plus account coordinates."""

    project: str
    stage: str
    region: str
    account_id: str = "*"
    partition: str = "aws"

    def arn(self, service: str, resource: str, *, regional: bool = True) -> str:
        region = self.region if regional else ""
        account = self.account_id if regional else ""
        return f"arn:{self.partition}:{service}:{region}:{account}:{resource}"

    def physical(self, name: str) -> str:
        return physical_name(self.project, self.stage, name)


def _allow(actions: Iterable[str], pattern: str) -> PermissionStatement:
    return PermissionStatement(effect="Allow", actions=tuple(actions), resource_pattern=pattern)


def statements_for_resource(resource: Resource, ctx: ArnContext) -> list[PermissionStatement]:
    """Statements granting runtime access to exactly one data resource."""
    physical = ctx.physical(resource.name)
    match resource.kind:
        case ResourceKind.TABLE:
            table_arn = ctx.arn("dynamodb", f"table/{physical}")
            return [
                _allow(_TABLE_ACTIONS, table_arn),
                _allow(_TABLE_ACTIONS, f"{table_arn}/index/*"),
            ]
        case ResourceKind.BUCKET:
            bucket_arn = ctx.arn("s3", physical, regional=False)
            return [
                _allow(("s3:ListBucket",), bucket_arn),
                _allow(_OBJECT_ACTIONS, f"{bucket_arn}/*"),
            ]
        case ResourceKind.QUEUE:
            return [_allow(_QUEUE_ACTIONS, ctx.arn("sqs", physical))]
        case ResourceKind.SECRET:
            # Secret ARNs carry a random 6-character suffix.
            return [_allow(_SECRET_ACTIONS, ctx.arn("secretsmanager", f"secret:{physical}-*"))]
        case ResourceKind.PARAMETER:
            path = parameter_path(ctx.project, ctx.stage, resource.name)
            actions = list(_PARAMETER_ACTIONS)
            if getattr(resource, "parameter_type", None) == "SecureString":
                actions.append("kms:Decrypt")
            return [_allow(actions, ctx.arn("ssm", f"parameter{path}"))]
        case ResourceKind.RELATIONAL_DATABASE:
            return [_allow(("dsql:DbConnect",), ctx.arn("dsql", f"cluster/{physical}"))]
        case _:
            return []


def merge_statements(statements: Iterable[PermissionStatement]) -> list[PermissionStatement]:
    """Merge by ``(effect, resource_pattern)`` and return a deterministic list."""
    merged: dict[tuple[str, str], set[str]] = {}
    for s in statements:
        merged.setdefault(s.merge_key, set()).update(s.actions)
    return [
        PermissionStatement(effect=effect, actions=tuple(actions), resource_pattern=pattern)
        for (effect, pattern), actions in sorted(merged.items())
    ]


def synthesize(
    compute: ComputeUnitResource,
    resources: Mapping[str, Resource],
    ctx: ArnContext,
) -> list[PermissionStatement]:
    """Minimal statement set for one compute unit."""
    statements = [
        _allow(
            _LOG_ACTIONS,
            ctx.arn("logs", f"log-group:/aws/lambda/{ctx.physical(compute.name)}:*"),
        )
    ]
    if compute.tracing:
        # X-Ray has no resource-level scoping.
        statements.append(_allow(_TRACING_ACTIONS, "*"))

    referenced = dict.fromkeys(compute.uses)
    if compute.subscribes_to:
        referenced.setdefault(compute.subscribes_to)
    for name in referenced:
        target = resources.get(name)
        if target is None:
            continue
        statements.extend(statements_for_resource(target, ctx))
        dlq = getattr(target, "dead_letter_queue", None)
        if dlq and dlq in resources:
            statements.extend(statements_for_resource(resources[dlq], ctx))
    result = merge_statements(statements)
    logger.debug("Synthesized %d statements for %s", len(result), compute.name)
    return result


def synthesize_role(
    members: Iterable[ComputeUnitResource],
    resources: Mapping[str, Resource],
    ctx: ArnContext,
) -> list[PermissionStatement]:
    """Merge the statement sets of every compute unit assuming one role."""
    statements: list[PermissionStatement] = []
    for compute in members:
        statements.extend(synthesize(compute, resources, ctx))
    return merge_statements(statements)


def policy_document(statements: Iterable[PermissionStatement]) -> dict[str, Any]:
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": s.effect,
                "Action": list(s.actions),
                "Resource": s.resource_pattern,
            }
            for s in statements
        ],
    }


def policy_json(statements: Iterable[PermissionStatement]) -> str:
    """Byte-stable JSON rendering of a policy document."""
    return json.dumps(policy_document(statements), sort_keys=True, separators=(",", ":"))
