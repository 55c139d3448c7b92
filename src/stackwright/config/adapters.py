"""Resolution of the provider adapter factory named in the configuration."""

from __future__ import annotations

import importlib
import importlib.metadata
import importlib.util
from pathlib import Path
from typing import TYPE_CHECKING, Any

from stackwright.engine.adapters import AdapterRegistry

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import ModuleType

    from stackwright.config.schema import StackSettings

ENTRY_POINT_GROUP = "stackwright.adapters"


class AdapterFactoryError(Exception):
    """Raised when the adapter factory cannot be resolved or misbehaves."""


def _load_local_module(module_path: str, config_dir: Path) -> ModuleType:
    """Load a Python module from a file relative to *config_dir*."""
    parts = module_path.split(".")
    candidates = [
        config_dir / Path(*parts).with_suffix(".py"),
        config_dir / Path(*parts) / "__init__.py",
    ]
    file_path = next((p for p in candidates if p.exists()), None)
    if file_path is None:
        raise AdapterFactoryError(f"Module '{module_path}' not found relative to {config_dir}")

    spec = importlib.util.spec_from_file_location(module_path, file_path)
    if spec is None or spec.loader is None:
        raise AdapterFactoryError(f"Failed to create module spec for '{file_path}'")
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


def resolve_factory(ref: str, config_dir: Path) -> Callable[..., Any]:
    """Resolve *ref* to the callable that builds the adapter registry.

    Resolution order:

    1. No ``:``: entry-point lookup (group ``stackwright.adapters``).
    2. Has ``:``: split into ``module_path:function_name``.
       a. Try ``importlib.import_module`` (installed packages).
       b. Fall back to ``spec_from_file_location`` (local files relative to *config_dir*).
    """
    if ":" not in ref:
        eps = list(importlib.metadata.entry_points(group=ENTRY_POINT_GROUP, name=ref))
        if not eps:
            raise AdapterFactoryError(
                f"No entry point found for '{ref}' in group '{ENTRY_POINT_GROUP}'"
            )
        return eps[0].load()

    module_path, _, function_name = ref.rpartition(":")
    if not module_path or not function_name:
        raise AdapterFactoryError(
            f"Invalid adapters reference '{ref}': expected 'module.path:function_name'"
        )

    try:
        mod = importlib.import_module(module_path)
    except ModuleNotFoundError:
        mod = _load_local_module(module_path, config_dir)

    obj = getattr(mod, function_name, None)
    if not callable(obj):
        raise AdapterFactoryError(
            f"'{ref}' is not a callable attribute"
            if obj is not None
            else f"Module has no attribute '{function_name}' (from '{ref}')"
        )
    return obj


def build_registry(settings: StackSettings, config_dir: Path) -> AdapterRegistry:
    """Call the configured factory with the settings and check what it returns."""
    if not settings.adapters:
        raise AdapterFactoryError(
            "No provider adapters configured (set 'adapters' in YAML or STACKWRIGHT_ADAPTERS)"
        )
    factory = resolve_factory(settings.adapters, config_dir)
    try:
        registry = factory(settings)
    except AdapterFactoryError:
        raise
    except Exception as exc:
        raise AdapterFactoryError(
            f"Adapter factory '{settings.adapters}' raised {type(exc).__name__}: {exc}"
        ) from exc

    if not isinstance(registry, AdapterRegistry):
        raise AdapterFactoryError(
            f"Adapter factory '{settings.adapters}' must return an AdapterRegistry"
        )
    return registry
