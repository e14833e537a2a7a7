from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from bddchain.configuration import (
    ENV_CONTINUE_ON_ERROR,
    ENV_MARK_REMAINING_SKIPPED,
    ENV_STEP_TIMEOUT,
    configure,
    get_configuration,
    load_options,
    options_from_env,
    reset_configuration,
    resolve_options,
)
from bddchain.handlers import HandlerRegistry
from bddchain.models import ScenarioOptions


def _options_file(tmp_path: Path, payload: dict) -> Path:
    path = tmp_path / "options.yaml"
    path.write_text(yaml.safe_dump(payload), encoding="utf-8")
    return path


def test_defaults() -> None:
    options = get_configuration().options

    assert options == ScenarioOptions()
    assert options.step_timeout is None


def test_environment_overrides() -> None:
    env = {ENV_CONTINUE_ON_ERROR: "yes", ENV_MARK_REMAINING_SKIPPED: "0", ENV_STEP_TIMEOUT: "2.5"}

    assert options_from_env(env) == {
        "continue_on_error": True,
        "mark_remaining_as_skipped_on_failure": False,
        "step_timeout": 2.5,
    }


def test_invalid_flag_is_rejected() -> None:
    with pytest.raises(ValueError, match=ENV_CONTINUE_ON_ERROR):
        options_from_env({ENV_CONTINUE_ON_ERROR: "maybe"})


def test_priority_overrides_file_env(tmp_path: Path) -> None:
    path = _options_file(tmp_path, {"options": {"continue_on_error": False, "step_timeout": 1}})
    env = {ENV_CONTINUE_ON_ERROR: "true", ENV_MARK_REMAINING_SKIPPED: "true"}

    options = resolve_options({"step_timeout": 3, "continue_on_error": None}, path, env)

    assert options.continue_on_error is False
    assert options.mark_remaining_as_skipped_on_failure is True
    assert options.step_timeout == 3


def test_load_options_accepts_top_level_mapping(tmp_path: Path) -> None:
    path = _options_file(tmp_path, {"mark_remaining_as_skipped_on_failure": True})

    assert load_options(path) == ScenarioOptions(mark_remaining_as_skipped_on_failure=True)


def test_load_options_validates(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        load_options(_options_file(tmp_path, {"continue_on_eror": True}))
    with pytest.raises(ValidationError):
        load_options(_options_file(tmp_path, {"step_timeout": 0}))

    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError, match="mapping"):
        load_options(path)


def test_process_defaults_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(ENV_STEP_TIMEOUT, "4")
    reset_configuration()

    assert get_configuration().options.step_timeout == 4


def test_configure_replaces_only_given_parts() -> None:
    original = get_configuration()
    registry = HandlerRegistry()

    updated = configure(handler_factory=registry)

    assert updated.handler_factory is registry
    assert updated.observers is original.observers
    assert get_configuration() is updated

    reset_configuration()
    assert get_configuration().handler_factory is not registry
