"""Plan, deploy and destroy output rendering (plain text)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from stackwright.engine.types import Action

if TYPE_CHECKING:
    from collections.abc import Iterable

    from stackwright.core.state import DeploymentState
    from stackwright.engine.types import (
        DeploymentResult,
        DestroyResult,
        Plan,
        ResourceChange,
        ResourceFailure,
    )

_SYMBOLS: dict[Action, str] = {
    Action.CREATE: "+",
    Action.UPDATE: "~",
    Action.REPLACE: "-/+",
    Action.DELETE: "-",
    Action.RETAIN: "!",
    Action.NOOP: " ",
}

_ACTION_DESC: dict[Action, str] = {
    Action.CREATE: "will be created",
    Action.UPDATE: "will be updated in-place",
    Action.REPLACE: "must be replaced (identity-bearing field changed)",
    Action.DELETE: "will be destroyed",
    Action.RETAIN: "is no longer declared; retained (stateful, use destroy --force)",
    Action.NOOP: "is up-to-date",
}


def format_change(change: ResourceChange) -> str:
    symbol = _SYMBOLS[change.action]
    return f"  {symbol} {change.kind.value} '{change.name}' {_ACTION_DESC[change.action]}"


def format_changes(changes: Iterable[ResourceChange]) -> str:
    """Render non-NOOP changes, one per line."""
    lines = [format_change(c) for c in changes if c.action != Action.NOOP]
    if not lines:
        return "No changes. Resources are up-to-date."
    return "\n".join(lines)


def format_plan(plan: Plan) -> str:
    m = plan.metadata
    header = f"Deployment {m.project}/{m.stage}/{m.region} (state serial {m.state_serial})"
    return f"{header}\n\n{format_changes(plan.changes)}"


def format_plan_summary(summary: dict[str, int]) -> str:
    """Render ``Plan: 2 to create, 1 to update, 0 to delete, 1 retained.``"""
    changed = summary.get("update", 0) + summary.get("replace", 0)
    return (
        f"Plan: {summary.get('create', 0)} to create, {changed} to update, "
        f"{summary.get('delete', 0)} to delete, {summary.get('retain', 0)} retained."
    )


def format_failures(failures: Iterable[ResourceFailure]) -> str:
    lines = []
    for f in failures:
        mutated = "yes" if f.state_mutated else "no"
        lines.append(
            f"  ! {f.kind.value} '{f.name}' failed ({f.error_class}): {f.message}"
            f" [state mutated: {mutated}]"
        )
    return "\n".join(lines)


def format_deploy_summary(result: DeploymentResult) -> str:
    """Render ``Deploy complete! Resources: 2 created, 0 updated, 1 deleted, 3 unchanged.``"""
    s = result.summary()
    counts = (
        f"{s['create']} created, {s['update']} updated, {s['delete']} deleted, "
        f"{s['no-op']} unchanged"
    )
    if s["retain"]:
        counts += f", {s['retain']} retained"
    if result.success:
        return f"Deploy complete! Resources: {counts}."
    return f"Deploy finished with errors. Resources: {counts}.\n{format_failures(result.failed)}"


def format_state(state: DeploymentState, *, force: bool) -> str:
    """List what a destroy would do with each recorded resource."""
    from stackwright.resources.kinds import is_stateful

    if state.is_empty:
        return "No resources recorded."
    lines = []
    for name, entry in sorted(state.resources.items()):
        skipped = is_stateful(entry.kind) and not force
        symbol = " " if skipped else "-"
        note = "skipped (stateful, use --force)" if skipped else "will be destroyed"
        lines.append(f"  {symbol} {entry.kind.value} '{name}' {note}")
    return "\n".join(lines)


def format_destroy_summary(result: DestroyResult) -> str:
    s = result.summary()
    counts = f"{s['delete']} deleted, {s['skipped']} skipped, {s['failed']} failed"
    if result.success:
        return f"Destroy complete! Resources: {counts}."
    return f"Destroy finished with errors. Resources: {counts}.\n{format_failures(result.failed)}"
