from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from stackwright.core.state import DeploymentState, StateEntry
from stackwright.engine.diff import diff
from stackwright.engine.errors import KindChangeError
from stackwright.engine.types import Action
from stackwright.resources.builder import StackBuilder
from stackwright.resources.kinds import ResourceKind
from stackwright.resources.model import ResourceModel

if TYPE_CHECKING:
    from stackwright.resources.base import Resource


def _model(ttl: str | None = None, key: str = "id") -> ResourceModel:
    b = StackBuilder("shop", "dev", "us-east-1", default_role="api-role")
    b.table("users", ttl_attribute=ttl, partition_key={"name": key})
    b.table("orders")
    b.function("get-user", handler="h.get", uses=["users"])
    return b.build()


def _ordered(model: ResourceModel) -> list[Resource]:
    return [model.get(n) for n in model.order()]


def _state_from(model: ResourceModel) -> DeploymentState:
    """State as if *model* had been applied successfully."""
    state = DeploymentState(project="shop", stage="dev", region="us-east-1")
    deps = model.dependencies()
    for r in model.resources:
        state.resources[r.name] = StateEntry(
            name=r.name,
            kind=r.kind,
            identifier=f"id-{r.name}",
            fingerprint=r.fingerprint,
            identity_fingerprint=r.identity_fingerprint,
            dependencies=deps[r.name],
        )
    return state


def _empty_state() -> DeploymentState:
    return DeploymentState(project="shop", stage="dev", region="us-east-1")


def test_everything_created_on_empty_state() -> None:
    model = _model()
    d = diff(_ordered(model), _empty_state())
    assert [c.name for c in d.to_create] == ["users", "orders", "api-role", "get-user"]
    assert not d.is_empty
    assert d.summary()["create"] == 4


def test_unchanged_model_is_idempotent() -> None:
    model = _model()
    d = diff(_ordered(model), _state_from(model))
    assert d.is_empty
    assert {c.action for c in d.changes} == {Action.NOOP}
    assert len(d.unchanged) == 4


def test_only_changed_resource_updates() -> None:
    before = _model()
    after = _model(ttl="expires")
    d = diff(_ordered(after), _state_from(before))

    assert [c.name for c in d.to_update] == ["users"]
    change = d.to_update[0]
    assert change.action is Action.UPDATE
    assert change.identifier == "id-users"
    assert change.prior_fingerprint != change.fingerprint
    assert not change.replacement
    assert {c.name for c in d.unchanged} == {"orders", "api-role", "get-user"}


def test_identity_change_is_flagged_as_replacement() -> None:
    before = _model()
    after = _model(key="user_id")
    d = diff(_ordered(after), _state_from(before))

    change = next(c for c in d.to_update if c.name == "users")
    assert change.action is Action.REPLACE
    assert change.replacement


def test_kind_change_is_rejected() -> None:
    model = _model()
    state = _state_from(model)
    state.resources["orders"] = state.resources["orders"].model_copy(
        update={"kind": ResourceKind.BUCKET}
    )
    with pytest.raises(KindChangeError) as exc_info:
        diff(_ordered(model), state)
    assert exc_info.value.changes == [("orders", "Bucket", "Table")]
    assert "'orders' is recorded as Bucket but declared as Table" in exc_info.value.errors[0]


def test_removed_stateful_resource_is_retained() -> None:
    before = _model()
    b = StackBuilder("shop", "dev", "us-east-1", default_role="api-role")
    b.table("users")
    b.function("get-user", handler="h.get", uses=["users"])
    after = b.build()

    d = diff(_ordered(after), _state_from(before))

    assert [c.name for c in d.retained] == ["orders"]
    assert d.retained[0].action is Action.RETAIN
    assert d.to_delete == []
    assert d.is_empty


def test_removed_compute_and_role_deleted_dependents_first() -> None:
    before = _model()
    b = StackBuilder("shop", "dev", "us-east-1", default_role="api-role")
    b.table("users")
    b.table("orders")
    after = b.build()

    d = diff(_ordered(after), _state_from(before))

    assert [c.name for c in d.to_delete] == ["get-user", "api-role"]
    assert all(c.action is Action.DELETE for c in d.to_delete)
    assert d.to_delete[0].identifier == "id-get-user"


def test_adding_a_reference_changes_role_and_compute() -> None:
    before = _model()
    b = StackBuilder("shop", "dev", "us-east-1", default_role="api-role")
    b.table("users")
    b.table("orders")
    b.function("get-user", handler="h.get", uses=["users", "orders"])
    after = b.build()

    d = diff(_ordered(after), _state_from(before))

    assert [c.name for c in d.to_update] == ["api-role", "get-user"]
