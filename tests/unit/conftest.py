"""Shared fixtures for unit tests."""

from __future__ import annotations

import os
import threading
from typing import TYPE_CHECKING, Any

import pytest

from stackwright.config import load
from stackwright.core.local import LocalStateStore
from stackwright.engine.adapters import AdapterRegistry, ProviderAdapter
from stackwright.engine.engine import StackEngine
from stackwright.engine.retry import RetryPolicy
from stackwright.resources.kinds import ResourceKind

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from stackwright.config.schema import Config
    from stackwright.engine.adapters import EngineContext


@pytest.fixture(autouse=True)
def _clean_stackwright_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove STACKWRIGHT_* env vars so unit tests don't leak host config."""
    for var in [v for v in os.environ if v.startswith("STACKWRIGHT_")]:
        monkeypatch.delenv(var, raising=False)


class RecordingAdapter(ProviderAdapter):
    """In-memory adapter that records every call.

    ``failures`` maps a resource name to exceptions raised, one per call,
    before the call is allowed to succeed.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.configs: dict[str, dict[str, Any]] = {}
        self.failures: dict[str, list[BaseException]] = {}
        self.validation_errors: list[str] = []
        self._lock = threading.Lock()

    def fail(self, name: str, *excs: BaseException) -> None:
        self.failures.setdefault(name, []).extend(excs)

    def _record(self, op: str, name: str) -> None:
        with self._lock:
            self.calls.append((op, name))
            pending = self.failures.get(name)
            exc = pending.pop(0) if pending else None
        if exc is not None:
            raise exc

    def names(self, op: str) -> list[str]:
        return [n for o, n in self.calls if o == op]

    def validate(self, ctx: EngineContext, resource: Any) -> list[str]:
        return list(self.validation_errors)

    def create(self, ctx: EngineContext, config: dict[str, Any]) -> str:
        self._record("create", config["name"])
        self.configs[config["name"]] = config
        return f"{config['kind']}:{config['physical_name']}"

    def update(self, ctx: EngineContext, identifier: str, config: dict[str, Any]) -> str:
        self._record("update", config["name"])
        self.configs[config["name"]] = config
        return identifier

    def delete(self, ctx: EngineContext, identifier: str) -> None:
        physical = identifier.split(":", 1)[-1]
        self._record("delete", physical.removeprefix(f"{ctx.project}-{ctx.stage}-"))


def make_registry(adapter: ProviderAdapter) -> AdapterRegistry:
    registry = AdapterRegistry()
    for kind in ResourceKind:
        registry.register(kind, adapter)
    return registry


def no_wait(_: float) -> None:
    return None


FAST_RETRY = RetryPolicy(max_attempts=3, base_delay=0.0, sleep=no_wait)


@pytest.fixture
def adapter() -> RecordingAdapter:
    return RecordingAdapter()


@pytest.fixture
def store(tmp_path: Path) -> LocalStateStore:
    return LocalStateStore(tmp_path / "state")


@pytest.fixture
def engine(store: LocalStateStore, adapter: RecordingAdapter) -> StackEngine:
    return StackEngine(store, make_registry(adapter), max_workers=2, retry=FAST_RETRY)


_ADAPTERS_MODULE = '''
from stackwright.engine.adapters import AdapterRegistry, ProviderAdapter
from stackwright.resources.kinds import ResourceKind


class EchoAdapter(ProviderAdapter):
    def create(self, ctx, config):
        return f"{config['kind']}:{config['physical_name']}"

    def update(self, ctx, identifier, config):
        return identifier

    def delete(self, ctx, identifier):
        return None


def build(settings):
    registry = AdapterRegistry()
    for kind in ResourceKind:
        registry.register(kind, EchoAdapter())
    return registry


def broken(settings):
    raise RuntimeError("boom")


def not_a_registry(settings):
    return {}
'''


@pytest.fixture
def adapters_module(tmp_path: Path) -> str:
    """Write a local adapter factory module and return its reference."""
    (tmp_path / "echo_adapters.py").write_text(_ADAPTERS_MODULE)
    return "echo_adapters:build"


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., Config]:
    """Factory fixture: write YAML + optional .env, return loaded Config."""

    def _make(yaml_str: str, *, dotenv: str | None = None) -> Config:
        (tmp_path / "stackwright.yaml").write_text(yaml_str)
        if dotenv is not None:
            (tmp_path / ".env").write_text(dotenv)
        return load(tmp_path / "stackwright.yaml")

    return _make
