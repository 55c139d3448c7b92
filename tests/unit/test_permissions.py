from __future__ import annotations

from stackwright.engine.permissions import (
    ArnContext,
    merge_statements,
    policy_json,
    synthesize,
    synthesize_role,
)
from stackwright.resources.compute import ComputeUnitResource
from stackwright.resources.queue import QueueResource
from stackwright.resources.role import PermissionStatement
from stackwright.resources.secret import ParameterResource, SecretResource
from stackwright.resources.table import TableResource

CTX = ArnContext("shop", "dev", "us-east-1", "123456789012")


def _resources(*items):
    return {r.name: r for r in items}


def test_table_access_is_scoped_to_table_arn() -> None:
    users = TableResource(name="users")
    fn = ComputeUnitResource(name="get-user", handler="h.get", uses=["users"])

    statements = synthesize(fn, _resources(users, fn), CTX)

    patterns = {s.resource_pattern for s in statements}
    table_arn = "arn:aws:dynamodb:us-east-1:123456789012:table/shop-dev-users"
    assert table_arn in patterns
    assert f"{table_arn}/index/*" in patterns
    assert "*" not in patterns
    table_stmt = next(s for s in statements if s.resource_pattern == table_arn)
    assert "dynamodb:GetItem" in table_stmt.actions
    assert all(not a.endswith(":*") for s in statements for a in s.actions)


def test_unreferenced_resources_get_no_statements() -> None:
    users = TableResource(name="users")
    orders = TableResource(name="orders")
    fn = ComputeUnitResource(name="get-user", handler="h.get", uses=["users"])

    statements = synthesize(fn, _resources(users, orders, fn), CTX)

    assert not any("orders" in s.resource_pattern for s in statements)


def test_synthesis_is_deterministic() -> None:
    users = TableResource(name="users")
    jobs = QueueResource(name="jobs")
    fn_a = ComputeUnitResource(name="a", handler="h.a", uses=["users", "jobs"])
    fn_b = ComputeUnitResource(name="b", handler="h.b", uses=["jobs", "users"])
    resources = _resources(users, jobs, fn_a, fn_b)

    first = synthesize_role([fn_a, fn_b], resources, CTX)
    second = synthesize_role([fn_b, fn_a], resources, CTX)

    assert first == second
    assert policy_json(first) == policy_json(second)


def test_subscription_grants_queue_and_dead_letter_queue() -> None:
    dlq = QueueResource(name="jobs-dlq")
    jobs = QueueResource(name="jobs", dead_letter_queue="jobs-dlq")
    worker = ComputeUnitResource(name="worker", handler="h.work", subscribes_to="jobs")

    statements = synthesize(worker, _resources(dlq, jobs, worker), CTX)

    patterns = {s.resource_pattern for s in statements}
    assert "arn:aws:sqs:us-east-1:123456789012:shop-dev-jobs" in patterns
    assert "arn:aws:sqs:us-east-1:123456789012:shop-dev-jobs-dlq" in patterns


def test_secure_parameter_adds_decrypt() -> None:
    param = ParameterResource(name="api-key", value="x", parameter_type="SecureString")
    secret = SecretResource(name="db")
    fn = ComputeUnitResource(name="fn", handler="h.main", uses=["api-key", "db"])

    statements = synthesize(fn, _resources(param, secret, fn), CTX)

    by_pattern = {s.resource_pattern: s for s in statements}
    param_stmt = by_pattern["arn:aws:ssm:us-east-1:123456789012:parameter/shop/dev/api-key"]
    assert "kms:Decrypt" in param_stmt.actions
    assert "arn:aws:secretsmanager:us-east-1:123456789012:secret:shop-dev-db-*" in by_pattern


def test_tracing_is_the_only_wildcard() -> None:
    fn = ComputeUnitResource(name="fn", handler="h.main", tracing=True)

    statements = synthesize(fn, _resources(fn), CTX)

    wildcard = [s for s in statements if s.resource_pattern == "*"]
    assert len(wildcard) == 1
    assert wildcard[0].actions == ("xray:PutTelemetryRecords", "xray:PutTraceSegments")


def test_merge_combines_actions_per_pattern() -> None:
    merged = merge_statements(
        [
            PermissionStatement(actions=("b:Two", "a:One"), resource_pattern="arn:x"),
            PermissionStatement(actions=("a:One", "c:Three"), resource_pattern="arn:x"),
            PermissionStatement(actions=("z:Last",), resource_pattern="arn:a"),
        ]
    )
    assert [s.resource_pattern for s in merged] == ["arn:a", "arn:x"]
    assert merged[1].actions == ("a:One", "b:Two", "c:Three")
