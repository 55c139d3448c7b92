"""YAML configuration loading and convenience plan/deploy/destroy API."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from stackwright.config.adapters import AdapterFactoryError, build_registry, resolve_factory
from stackwright.config.loader import (
    DEFAULT_CONFIG_FILE,
    ConfigError,
    load_config,
    load_settings,
)
from stackwright.config.schema import Config, StackSettings
from stackwright.core.local import LocalStateStore
from stackwright.core.s3 import S3StateStore
from stackwright.engine.engine import StackEngine

if TYPE_CHECKING:
    from stackwright.core.store import StateStore
    from stackwright.engine.retry import RetryPolicy
    from stackwright.engine.types import DeploymentResult, DestroyResult, Plan
    from stackwright.resources.model import ResourceModel

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "AdapterFactoryError",
    "Config",
    "ConfigError",
    "StackSettings",
    "build_model",
    "build_registry",
    "build_store",
    "deploy",
    "destroy",
    "engine_for",
    "load",
    "load_config",
    "load_settings",
    "plan",
    "resolve_factory",
]


def load(path: Path | str) -> Config:
    """Load a YAML configuration file."""
    return load_config(path)


def build_model(config: Config) -> ResourceModel:
    """Build the resource model declared by *config*.

    ``ValidationError`` from the builder propagates unchanged.
    """
    try:
        return config.build_model()
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


def build_store(settings: StackSettings, config_dir: Path | str = ".") -> StateStore:
    """State Store selected by ``state_backend``."""
    if settings.state_backend == "s3":
        assert settings.state_bucket is not None
        return S3StateStore(
            settings.state_bucket,
            prefix=settings.state_prefix,
            region=settings.region,
        )
    path = settings.state_path
    if not path.is_absolute():
        path = Path(config_dir) / path
    return LocalStateStore(path)


def engine_for(
    settings: StackSettings,
    config_dir: Path | str = ".",
    *,
    retry: RetryPolicy | None = None,
) -> StackEngine:
    """Wire store and adapters from *settings* into a ``StackEngine``."""
    config_dir = Path(config_dir)
    try:
        registry = build_registry(settings, config_dir)
    except AdapterFactoryError as exc:
        raise ConfigError(str(exc)) from exc
    return StackEngine(
        build_store(settings, config_dir),
        registry,
        max_workers=settings.max_workers,
        retry=retry,
    )


def plan(config: Config) -> Plan:
    """Plan changes for the given configuration (read-only)."""
    model = build_model(config)
    return engine_for(config.settings, config.config_dir).plan(model)


def deploy(config: Config) -> DeploymentResult:
    """Reconcile the account with the given configuration."""
    model = build_model(config)
    return engine_for(config.settings, config.config_dir).deploy(model)


def destroy(
    settings: StackSettings,
    *,
    project: str,
    stage: str,
    region: str,
    force: bool = False,
    config_dir: Path | str = ".",
) -> DestroyResult:
    """Tear down everything recorded for (project, stage, region)."""
    return engine_for(settings, config_dir).destroy(project, stage, region, force=force)
