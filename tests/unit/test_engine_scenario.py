"""End-to-end reconciliation of a small API against the in-memory adapter."""

from __future__ import annotations

from typing import TYPE_CHECKING

from stackwright.core.local import LocalStateStore
from stackwright.engine.types import Action
from stackwright.resources.builder import StackBuilder

if TYPE_CHECKING:
    from pathlib import Path

    from stackwright.engine.engine import StackEngine
    from stackwright.resources.model import ResourceModel
    from tests.unit.conftest import RecordingAdapter

KEY = ("shop", "dev", "us-east-1")


def _declare(*, with_function: bool = True) -> ResourceModel:
    b = StackBuilder(*KEY, default_role="api-role")
    b.table("users")
    if with_function:
        b.function("get-user", handler="handlers/users.get", uses=["users"])
    return b.build()


def test_deploy_redeploy_remove_destroy(
    engine: StackEngine, adapter: RecordingAdapter, store: LocalStateStore
) -> None:
    # First deploy creates everything, data before role before compute.
    plan = engine.plan(_declare())
    assert [c.action for c in plan.changes] == [Action.CREATE] * 3
    assert plan.order == ["users", "api-role", "get-user"]
    first = engine.deploy(_declare())
    assert first.created == ["users", "api-role", "get-user"]

    # Unchanged declarations: zero provider calls.
    adapter.calls.clear()
    second = engine.deploy(_declare())
    assert adapter.calls == []
    assert second.summary()["no-op"] == 3

    # Removing the function orphans it and its derived role; the table stays.
    adapter.calls.clear()
    plan = engine.plan(_declare(with_function=False))
    assert plan.summary()["delete"] == 2
    third = engine.deploy(_declare(with_function=False))
    assert adapter.calls == [("delete", "get-user"), ("delete", "api-role")]
    assert third.deleted == ["get-user", "api-role"]
    assert third.unchanged == ["users"]

    # Destroy keeps the table unless forced.
    kept = engine.destroy(*KEY)
    assert kept.skipped == ["users"]
    forced = engine.destroy(*KEY, force=True)
    assert forced.deleted == ["users"]
    assert LocalStateStore(store.root).load(*KEY).is_empty


def test_plan_round_trips_through_a_file(engine: StackEngine, tmp_path: Path) -> None:
    plan = engine.plan(_declare())
    path = tmp_path / "plans" / "plan.json"
    plan.save(path)

    loaded = type(plan).load(path)

    assert loaded.order == plan.order
    assert loaded.summary() == plan.summary()
    assert loaded.metadata.state_serial == 0
