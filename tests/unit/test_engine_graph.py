from __future__ import annotations

import pytest

from stackwright.engine.errors import CyclicDependencyError, ValidationError
from stackwright.engine.graph import DependencyGraph
from stackwright.engine.resolver import dependency_order, validate_model, validate_references
from stackwright.resources.api import HttpApiResource, RouteResource
from stackwright.resources.compute import ComputeUnitResource
from stackwright.resources.queue import QueueResource
from stackwright.resources.table import TableResource


def test_topological_order_respects_dependencies() -> None:
    g = DependencyGraph(["c", "b", "a"], {"c": ["b"], "b": ["a"]})
    assert g.topological_order() == ["a", "b", "c"]


def test_independent_nodes_keep_given_order() -> None:
    g = DependencyGraph(["z", "a", "m"], {})
    assert g.topological_order() == ["z", "a", "m"]


def test_reverse_order_tears_down_dependents_first() -> None:
    g = DependencyGraph(["a", "b", "c"], {"b": ["a"], "c": ["b"]})
    assert g.reverse_topological_order() == ["c", "b", "a"]


def test_dependencies_outside_graph_are_ignored() -> None:
    g = DependencyGraph(["a"], {"a": ["missing", "a"]})
    assert g.topological_order() == ["a"]
    assert g.dependencies_of("a") == set()


def test_dependents_is_reverse_adjacency() -> None:
    g = DependencyGraph(["a", "b", "c"], {"b": ["a"], "c": ["a"]})
    assert g.dependents() == {"a": {"b", "c"}, "b": set(), "c": set()}


def test_cycle_reports_path() -> None:
    g = DependencyGraph(["a", "b", "c"], {"a": ["c"], "b": ["a"], "c": ["b"]})
    with pytest.raises(CyclicDependencyError) as exc_info:
        g.topological_order()
    cycle = exc_info.value.cycle
    assert cycle[0] == cycle[-1]
    assert set(cycle) == {"a", "b", "c"}


def test_declaration_order_breaks_ties() -> None:
    resources = [
        TableResource(name="orders"),
        TableResource(name="users"),
        ComputeUnitResource(name="worker", handler="h.main", uses=["users"]),
        HttpApiResource(name="api"),
    ]
    assert dependency_order(resources) == ["orders", "users", "worker", "api"]


def test_route_after_api_and_handler() -> None:
    resources = [
        RouteResource(name="get-users", api="api", path="/users", handler="list-users"),
        ComputeUnitResource(name="list-users", handler="h.list"),
        HttpApiResource(name="api"),
    ]
    order = dependency_order(resources)
    assert order.index("api") < order.index("get-users")
    assert order.index("list-users") < order.index("get-users")


def test_queue_cycle_rejected_before_anything_runs() -> None:
    resources = [
        QueueResource(name="a", dead_letter_queue="b"),
        QueueResource(name="b", dead_letter_queue="a"),
    ]
    with pytest.raises(CyclicDependencyError):
        validate_model(resources)


def test_unknown_reference_is_reported() -> None:
    resources = [ComputeUnitResource(name="fn", handler="h.main", uses=["ghost"])]
    errors = validate_references(resources)
    assert errors == ["ComputeUnit 'fn' references unknown resource 'ghost'"]


def test_reference_to_wrong_kind_is_reported() -> None:
    resources = [
        HttpApiResource(name="api"),
        ComputeUnitResource(name="fn", handler="h.main", uses=["api"]),
    ]
    with pytest.raises(ValidationError) as exc_info:
        validate_model(resources)
    assert "field 'uses' cannot reference HttpApi 'api'" in exc_info.value.errors[0]
