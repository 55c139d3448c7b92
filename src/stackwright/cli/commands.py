"""CLI command implementations."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer

from stackwright.cli import app
from stackwright.cli.errors import handle_error

if TYPE_CHECKING:
    from stackwright.config.schema import StackSettings

ConfigPath = Annotated[
    Path,
    typer.Option("--config", "-c", help="Path to the declarations file."),
]

AutoApprove = Annotated[
    bool,
    typer.Option("--auto-approve", help="Skip interactive approval."),
]

Project = Annotated[
    str | None,
    typer.Option("--project", "-p", help="Project name (defaults to the config file's)."),
]

Region = Annotated[
    str | None,
    typer.Option("--region", "-r", help="Target region (defaults to configured region)."),
]

Stage = Annotated[
    str | None,
    typer.Option("--stage", "-s", help="Deployment stage (defaults to configured stage)."),
]

_DEFAULT_CONFIG = Path("stackwright.yaml")


def _settings_and_project(
    config: Path, project: str | None
) -> tuple[StackSettings, str | None, Path]:
    """Settings for commands that work from state alone.

    A declarations file is optional here; without one, settings come from the
    environment and ``.env`` in the working directory.
    """
    from stackwright.config import load, load_settings

    if config.is_file():
        cfg = load(config)
        return cfg.settings, project or cfg.project, cfg.config_dir
    return load_settings(Path()), project, Path()


def _deployment_key(
    config: Path, project: str | None, stage: str | None, region: str | None
) -> tuple[StackSettings, str, str, str, Path]:
    from stackwright.config.loader import ConfigError

    settings, project, config_dir = _settings_and_project(config, project)
    stage = stage or settings.stage
    region = region or settings.region
    if not project:
        raise ConfigError("--project is required (no declarations file found)")
    if not region:
        raise ConfigError("--region is required (or set STACKWRIGHT_REGION)")
    return settings, project, stage, region, config_dir


@app.command()
def plan(
    config: ConfigPath = _DEFAULT_CONFIG,
    out: Annotated[
        Path | None,
        typer.Option("--out", "-o", help="Save plan to file."),
    ] = None,
) -> None:
    """Show changes required by the current declarations.

    Exit code 0 when nothing would change, 2 when changes are pending.
    """
    from stackwright.cli.formatting import format_plan, format_plan_summary
    from stackwright.config import load
    from stackwright.config import plan as plan_fn

    try:
        cfg = load(config)
        plan_obj = plan_fn(cfg)
    except Exception as exc:
        raise typer.Exit(handle_error(exc)) from exc

    typer.echo(format_plan(plan_obj))
    typer.echo()
    typer.echo(format_plan_summary(plan_obj.summary()))

    if out is not None:
        plan_obj.save(out)
        typer.echo(f"\nPlan saved to {out}")

    if not plan_obj.diff.is_empty:
        raise typer.Exit(2)


@app.command()
def deploy(
    config: ConfigPath = _DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
) -> None:
    """Create or update declared resources and prune removed non-stateful ones."""
    from stackwright.cli.formatting import (
        format_deploy_summary,
        format_plan,
        format_plan_summary,
    )
    from stackwright.config import build_model, engine_for, load

    try:
        cfg = load(config)
        model = build_model(cfg)
        engine = engine_for(cfg.settings, cfg.config_dir)
        plan_obj = engine.plan(model)
    except Exception as exc:
        raise typer.Exit(handle_error(exc)) from exc

    if plan_obj.diff.is_empty:
        typer.echo("No changes. Resources are up-to-date.")
        raise typer.Exit(0)

    typer.echo(format_plan(plan_obj))
    typer.echo()
    typer.echo(format_plan_summary(plan_obj.summary()))
    typer.echo()

    if not auto_approve:
        try:
            typer.confirm("Do you want to deploy these changes?", abort=True)
        except typer.Abort as e:
            typer.echo("Deploy canceled.", err=True)
            raise typer.Exit(1) from e

    try:
        result = engine.deploy(model)
    except Exception as exc:
        raise typer.Exit(handle_error(exc)) from exc

    typer.echo(format_deploy_summary(result))
    if not result.success:
        raise typer.Exit(1)


@app.command()
def destroy(
    project: Project = None,
    region: Region = None,
    stage: Stage = None,
    force: Annotated[
        bool,
        typer.Option("--force", help="Also delete stateful resources (data is lost)."),
    ] = False,
    config: ConfigPath = _DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
) -> None:
    """Tear down everything recorded for a deployment, dependents first."""
    from stackwright.cli.formatting import format_destroy_summary, format_state
    from stackwright.config import engine_for

    try:
        settings, project, stage, region, config_dir = _deployment_key(
            config, project, stage, region
        )
        engine = engine_for(settings, config_dir)
        state = engine.store.load(project, stage, region)
    except Exception as exc:
        raise typer.Exit(handle_error(exc)) from exc

    if state.is_empty:
        typer.echo("No resources to destroy.")
        raise typer.Exit(0)

    typer.echo(f"Deployment {project}/{stage}/{region}\n")
    typer.echo(format_state(state, force=force))
    typer.echo()

    if not auto_approve:
        msg = "Do you really want to destroy these resources?"
        if force:
            msg = "This permanently deletes stateful resources and their data. Continue?"
        try:
            typer.confirm(msg, abort=True)
        except typer.Abort as e:
            typer.echo("Destroy canceled.", err=True)
            raise typer.Exit(1) from e

    try:
        result = engine.destroy(project, stage, region, force=force)
    except Exception as exc:
        raise typer.Exit(handle_error(exc)) from exc

    typer.echo(format_destroy_summary(result))
    if not result.success:
        raise typer.Exit(1)


@app.command()
def validate(config: ConfigPath = _DEFAULT_CONFIG) -> None:
    """Validate the declarations file without touching state."""
    from stackwright.config import build_model, engine_for, load

    try:
        cfg = load(config)
        model = build_model(cfg)
        engine_for(cfg.settings, cfg.config_dir).validate(model)
    except Exception as exc:
        raise typer.Exit(handle_error(exc)) from exc

    typer.echo(f"Configuration is valid ({len(model)} resources).")


@app.command()
def unlock(
    project: Project = None,
    region: Region = None,
    stage: Stage = None,
    config: ConfigPath = _DEFAULT_CONFIG,
) -> None:
    """Release a lease left behind by a crashed run."""
    from stackwright.config import build_store

    try:
        settings, project, stage, region, config_dir = _deployment_key(
            config, project, stage, region
        )
        build_store(settings, config_dir).force_release(project, stage, region)
    except Exception as exc:
        raise typer.Exit(handle_error(exc)) from exc

    typer.echo(f"Lease released for {project}/{stage}/{region}.")
