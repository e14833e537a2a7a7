from __future__ import annotations

import json

import pytest

from bddchain.logging_utils import RichConsoleRenderer, configure_logging
from bddchain.output_config import ENV_VAR_NAME, OutputFormat, get_log_format, get_output_format


def test_output_format_priority(monkeypatch: pytest.MonkeyPatch) -> None:
    assert get_output_format() is OutputFormat.AUTO

    monkeypatch.setenv(ENV_VAR_NAME, "PLAIN")
    assert get_output_format() is OutputFormat.PLAIN
    assert get_output_format("json") is OutputFormat.JSON
    assert get_output_format("sparkly") is OutputFormat.PLAIN

    monkeypatch.setenv(ENV_VAR_NAME, "nonsense")
    assert get_output_format() is OutputFormat.AUTO


@pytest.mark.parametrize(
    ("output_format", "log_format"),
    [
        (OutputFormat.JSON, "json"),
        (OutputFormat.PLAIN, "plain"),
        (OutputFormat.RICH, "console"),
        (OutputFormat.AUTO, "console"),
    ],
)
def test_log_format_follows_output_format(output_format: OutputFormat, log_format: str) -> None:
    assert get_log_format(output_format) == log_format


def test_json_logging(capsys: pytest.CaptureFixture[str]) -> None:
    logger = configure_logging("info", "json")

    logger.info("scenario_finished", scenario="Checkout", all_passed=True)

    line = capsys.readouterr().out.strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["event"] == "scenario_finished"
    assert payload["level"] == "info"
    assert payload["scenario"] == "Checkout"
    assert "timestamp" in payload


def test_level_filtering(capsys: pytest.CaptureFixture[str]) -> None:
    logger = configure_logging("warning", "json")

    logger.info("hidden")
    logger.warning("shown")

    out = capsys.readouterr().out
    assert "hidden" not in out
    assert "shown" in out


def test_rich_renderer_includes_event_and_fields() -> None:
    rendered = RichConsoleRenderer()(
        None,
        "warning",
        {"event": "observer_failed", "level": "warning", "timestamp": "2024-01-01T00:00:00Z", "observer": "Broken"},
    )

    assert "observer_failed" in rendered
    assert "observer=" in rendered
    assert "Broken" in rendered
