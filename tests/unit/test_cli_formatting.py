from __future__ import annotations

from stackwright.cli.formatting import (
    format_changes,
    format_deploy_summary,
    format_destroy_summary,
    format_plan_summary,
)
from stackwright.engine.errors import PermanentProviderError
from stackwright.engine.types import (
    Action,
    DeploymentResult,
    DestroyResult,
    ResourceChange,
    ResourceFailure,
)
from stackwright.resources.kinds import ResourceKind


def _change(name: str, action: Action, kind: ResourceKind = ResourceKind.TABLE) -> ResourceChange:
    return ResourceChange(name=name, kind=kind, action=action)


def test_format_changes_hides_noops() -> None:
    text = format_changes(
        [
            _change("users", Action.NOOP),
            _change("orders", Action.REPLACE),
            _change("old", Action.RETAIN),
            _change("fn", Action.DELETE, ResourceKind.COMPUTE_UNIT),
        ]
    )
    assert "users" not in text
    assert "-/+ Table 'orders' must be replaced" in text
    assert "! Table 'old' is no longer declared; retained" in text
    assert "- ComputeUnit 'fn' will be destroyed" in text


def test_format_changes_empty() -> None:
    assert format_changes([_change("users", Action.NOOP)]) == (
        "No changes. Resources are up-to-date."
    )


def test_plan_summary_counts_replacements_as_updates() -> None:
    summary = {"create": 1, "update": 1, "replace": 2, "delete": 0, "retain": 1, "no-op": 3}
    assert format_plan_summary(summary) == (
        "Plan: 1 to create, 3 to update, 0 to delete, 1 retained."
    )


def test_deploy_summary_with_failures() -> None:
    result = DeploymentResult(
        created=["users"],
        failed=[
            ResourceFailure.from_exception(
                "fn",
                ResourceKind.COMPUTE_UNIT,
                PermanentProviderError("bad artifact"),
                state_mutated=True,
            )
        ],
    )
    text = format_deploy_summary(result)
    assert text.startswith("Deploy finished with errors. Resources: 1 created")
    assert "ComputeUnit 'fn' failed (PermanentProviderError): bad artifact" in text
    assert "[state mutated: yes]" in text


def test_deploy_summary_mentions_retained() -> None:
    text = format_deploy_summary(DeploymentResult(unchanged=["a"], retained=["old"]))
    assert text == (
        "Deploy complete! Resources: 0 created, 0 updated, 0 deleted, 1 unchanged, 1 retained."
    )


def test_destroy_summary() -> None:
    text = format_destroy_summary(DestroyResult(deleted=["fn", "role"], skipped=["users"]))
    assert text == "Destroy complete! Resources: 2 deleted, 1 skipped, 0 failed."
