"""Tests for YAML configuration loading, settings resolution and adapter factories."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from stackwright.config import build_model, build_store, engine_for, load_settings
from stackwright.config.adapters import AdapterFactoryError, build_registry, resolve_factory
from stackwright.config.loader import ConfigError
from stackwright.config.schema import StackSettings
from stackwright.core.local import LocalStateStore
from stackwright.core.s3 import S3StateStore
from stackwright.engine.adapters import AdapterRegistry
from stackwright.resources.kinds import ResourceKind

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from stackwright.config.schema import Config

_FULL_YAML = """\
project: shop
region: us-east-1
adapters: echo_adapters:build
default_role: api-role

state:
  path: .state

tables:
  - name: users
    partition_key:
      name: user_id

apis:
  - name: api

functions:
  - name: get-user
    handler: handlers/users.get
    uses: [users]
    memory_mb: 256

routes:
  - api: api
    method: get
    path: /users/{id}
    handler: get-user

timers:
  - name: nightly
    schedule: rate(1 day)
    handler: get-user
"""


def test_full_config_builds_model(make_config: Callable[..., Config], tmp_path: Path) -> None:
    config = make_config(_FULL_YAML)

    assert config.project == "shop"
    assert config.region == "us-east-1"
    assert config.stage == "dev"
    assert config.routes[0].name == "api-get-users-id"
    assert config.routes[0].method == "GET"
    assert config.state_path == tmp_path / ".state"

    model = build_model(config)
    assert model.key == "shop/dev/us-east-1"
    assert model.get("get-user").role == "api-role"
    order = model.order()
    assert order.index("users") < order.index("api-role") < order.index("get-user")
    assert order.index("get-user") < order.index("api-get-users-id")
    assert order.index("get-user") < order.index("nightly")


def test_empty_sections_are_allowed(make_config: Callable[..., Config]) -> None:
    config = make_config("project: shop\nregion: us-east-1\ntables:\nfunctions:\n")
    assert config.tables == []
    assert len(build_model(config)) == 0


def test_yaml_wins_over_env_and_dotenv(
    make_config: Callable[..., Config], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("STACKWRIGHT_REGION", "us-east-2")
    config = make_config(
        "project: shop\nregion: eu-west-1\n", dotenv="STACKWRIGHT_REGION=ap-south-1\n"
    )
    assert config.region == "eu-west-1"


def test_env_wins_over_dotenv(
    make_config: Callable[..., Config], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("STACKWRIGHT_REGION", "us-east-2")
    config = make_config("project: shop\n", dotenv="STACKWRIGHT_REGION=ap-south-1\n")
    assert config.region == "us-east-2"


def test_dotenv_is_used_last(make_config: Callable[..., Config]) -> None:
    config = make_config(
        "project: shop\n",
        dotenv="STACKWRIGHT_REGION=ap-south-1\nSTACKWRIGHT_STAGE=prod\nSTACKWRIGHT_MAX_WORKERS=8\n",
    )
    assert config.region == "ap-south-1"
    assert config.stage == "prod"
    assert config.settings.max_workers == 8


def test_state_section_from_env(
    make_config: Callable[..., Config], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("STACKWRIGHT_STATE_BACKEND", "s3")
    monkeypatch.setenv("STACKWRIGHT_STATE_BUCKET", "team-state")
    config = make_config("project: shop\nregion: us-east-1\nstate:\n  prefix: deployments\n")
    assert config.settings.state_backend == "s3"
    assert config.settings.state_bucket == "team-state"
    assert config.settings.state_prefix == "deployments"


def test_s3_backend_requires_bucket(make_config: Callable[..., Config]) -> None:
    with pytest.raises(ConfigError, match="state.bucket is required"):
        make_config("project: shop\nstate:\n  backend: s3\n")


def test_unknown_state_key_rejected(make_config: Callable[..., Config]) -> None:
    with pytest.raises(ConfigError, match="Unknown key"):
        make_config("project: shop\nstate:\n  table: locks\n")


def test_unknown_top_level_key_rejected(make_config: Callable[..., Config]) -> None:
    with pytest.raises(ConfigError):
        make_config("project: shop\nprovider: aws\n")


def test_non_mapping_rejected(make_config: Callable[..., Config]) -> None:
    with pytest.raises(ConfigError, match="mapping"):
        make_config("- just\n- a list\n")


def test_invalid_yaml_rejected(make_config: Callable[..., Config]) -> None:
    with pytest.raises(ConfigError, match="Failed to read"):
        make_config("project: [unterminated\n")


def test_missing_region_fails_at_build(make_config: Callable[..., Config]) -> None:
    config = make_config("project: shop\n")
    with pytest.raises(ConfigError, match="region is required"):
        build_model(config)


def test_load_settings_without_config_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    (tmp_path / ".env").write_text("STACKWRIGHT_REGION=eu-central-1\n")
    monkeypatch.setenv("STACKWRIGHT_STAGE", "qa")
    settings = load_settings(tmp_path)
    assert settings.region == "eu-central-1"
    assert settings.stage == "qa"


def test_build_store_selects_backend(tmp_path: Path) -> None:
    local = build_store(StackSettings(state_path=".state"), tmp_path)
    assert isinstance(local, LocalStateStore)
    assert local.root == tmp_path / ".state"

    s3 = build_store(
        StackSettings(state_backend="s3", state_bucket="team-state", region="us-east-1"),
        tmp_path,
    )
    assert isinstance(s3, S3StateStore)
    assert s3.bucket == "team-state"


def test_resolve_local_factory(tmp_path: Path, adapters_module: str) -> None:
    factory = resolve_factory(adapters_module, tmp_path)
    registry = factory(StackSettings())
    assert isinstance(registry, AdapterRegistry)
    assert ResourceKind.TABLE in registry


def test_resolve_installed_factory(tmp_path: Path) -> None:
    factory = resolve_factory("stackwright.engine.adapters:AdapterRegistry", tmp_path)
    assert factory is AdapterRegistry


@pytest.mark.parametrize(
    ("ref", "message"),
    [
        ("no_such_module:build", "not found"),
        ("echo_adapters:missing", "no attribute"),
        (":build", "Invalid adapters reference"),
        ("not-registered", "No entry point"),
    ],
)
def test_bad_factory_references(
    tmp_path: Path, adapters_module: str, ref: str, message: str
) -> None:
    _ = adapters_module
    with pytest.raises(AdapterFactoryError, match=message):
        resolve_factory(ref, tmp_path)


def test_build_registry_checks_factory(tmp_path: Path, adapters_module: str) -> None:
    _ = adapters_module
    with pytest.raises(AdapterFactoryError, match="No provider adapters configured"):
        build_registry(StackSettings(), tmp_path)
    with pytest.raises(AdapterFactoryError, match="RuntimeError: boom"):
        build_registry(StackSettings(adapters="echo_adapters:broken"), tmp_path)
    with pytest.raises(AdapterFactoryError, match="must return an AdapterRegistry"):
        build_registry(StackSettings(adapters="echo_adapters:not_a_registry"), tmp_path)


def test_engine_for_wraps_factory_errors(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="No provider adapters configured"):
        engine_for(StackSettings(), tmp_path)


def test_engine_for_wires_settings(tmp_path: Path, adapters_module: str) -> None:
    settings = StackSettings(adapters=adapters_module, max_workers=2, state_path=".state")
    engine = engine_for(settings, tmp_path)
    assert isinstance(engine.store, LocalStateStore)
    assert engine.store.root == tmp_path / ".state"
