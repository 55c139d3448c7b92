"""YAML configuration file loader."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import dotenv_values
from pydantic import ValidationError
from ruamel.yaml import YAML

from stackwright.config.schema import Config, StackSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "stackwright.yaml"


class ConfigError(Exception):
    """Raised for configuration loading / validation errors."""


# Settings field → (YAML location, environment variable).
_SETTINGS_MAP: dict[str, tuple[tuple[str, ...], str]] = {
    "region": (("region",), "STACKWRIGHT_REGION"),
    "stage": (("stage",), "STACKWRIGHT_STAGE"),
    "account_id": (("account_id",), "STACKWRIGHT_ACCOUNT_ID"),
    "adapters": (("adapters",), "STACKWRIGHT_ADAPTERS"),
    "max_workers": (("max_workers",), "STACKWRIGHT_MAX_WORKERS"),
    "state_backend": (("state", "backend"), "STACKWRIGHT_STATE_BACKEND"),
    "state_path": (("state", "path"), "STACKWRIGHT_STATE_PATH"),
    "state_bucket": (("state", "bucket"), "STACKWRIGHT_STATE_BUCKET"),
    "state_prefix": (("state", "prefix"), "STACKWRIGHT_STATE_PREFIX"),
}

_STATE_KEYS = frozenset({"backend", "path", "bucket", "prefix"})


def _pop_yaml(raw: dict[str, Any], location: tuple[str, ...]) -> Any:
    if len(location) == 1:
        return raw.pop(location[0], None)
    section = raw.get(location[0])
    if not isinstance(section, dict):
        return None
    return section.pop(location[1], None)


def _resolve_settings(raw: dict[str, Any], config_dir: Path) -> dict[str, Any]:
    """Resolve settings fields from YAML, env vars, and ``.env`` file.

    Priority (highest wins): YAML value > env var > ``.env`` file.
    Resolved keys are removed from *raw*.
    """
    env_file = config_dir / ".env"
    dotenv_vals = dotenv_values(env_file, encoding="utf-8-sig") if env_file.is_file() else {}

    state = raw.get("state")
    if state is not None and not isinstance(state, dict):
        raise ConfigError("'state' must be a mapping")
    if isinstance(state, dict):
        unknown = sorted(set(state) - _STATE_KEYS)
        if unknown:
            raise ConfigError(f"Unknown key(s) in 'state': {', '.join(unknown)}")

    resolved: dict[str, Any] = {}
    for field, (location, env_key) in _SETTINGS_MAP.items():
        val = _pop_yaml(raw, location)
        if val is None:
            val = os.environ.get(env_key)
        if val is None:
            val = dotenv_vals.get(env_key)
        if val is not None:
            resolved[field] = val
    raw.pop("state", None)
    return resolved


def load_settings(config_dir: Path | str = ".") -> StackSettings:
    """Settings without a declarations file (env vars and ``.env`` only)."""
    try:
        return StackSettings.model_validate(_resolve_settings({}, Path(config_dir)))
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc


def load_config(path: Path | str) -> Config:
    """Load a YAML configuration file and return a ``Config`` object.

    Raises:
        ConfigError: On YAML parse errors, missing sections, or validation failures.
    """
    path = Path(path)

    try:
        raw = YAML(typ="safe").load(path)
    except Exception as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    try:
        raw["settings"] = _resolve_settings(raw, path.parent)
        config = Config.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    config.config_dir = path.parent
    logger.info("Loaded config from %s (%d resources)", path, len(config.resources))
    return config
