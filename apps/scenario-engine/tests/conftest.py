"""Test bootstrap for scenario-engine."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest
import structlog

APP_ROOT = Path(__file__).resolve().parents[1]
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from bddchain.configuration import (  # noqa: E402
    ENV_CONTINUE_ON_ERROR,
    ENV_MARK_REMAINING_SKIPPED,
    ENV_STEP_TIMEOUT,
    reset_configuration,
)
from bddchain.output_config import ENV_VAR_NAME  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_defaults(monkeypatch: pytest.MonkeyPatch):
    for name in (ENV_CONTINUE_ON_ERROR, ENV_MARK_REMAINING_SKIPPED, ENV_STEP_TIMEOUT, ENV_VAR_NAME):
        monkeypatch.delenv(name, raising=False)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    reset_configuration()
    yield
    reset_configuration()
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)
