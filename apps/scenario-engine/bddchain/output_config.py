"""Console and log output format selection."""

from __future__ import annotations

import os
from enum import Enum
from typing import Literal, Optional

LogFormat = Literal["json", "console", "plain"]

ENV_VAR_NAME = "CONSOLE_OUTPUT_FORMAT"


class OutputFormat(str, Enum):
    AUTO = "auto"
    RICH = "rich"
    PLAIN = "plain"
    JSON = "json"


def _parse(value: Optional[str]) -> Optional[OutputFormat]:
    if not value:
        return None
    try:
        return OutputFormat(value.lower())
    except ValueError:
        return None


def get_output_format(cli_override: Optional[str] = None) -> OutputFormat:
    """
    Resolve the console output format.

    Priority: CLI parameter > ``CONSOLE_OUTPUT_FORMAT`` environment variable > auto.
    Unknown values are ignored at each level.
    """

    return _parse(cli_override) or _parse(os.environ.get(ENV_VAR_NAME)) or OutputFormat.AUTO


def get_log_format(output_format: OutputFormat) -> LogFormat:
    """Map the console output format to the structlog renderer to use."""

    if output_format is OutputFormat.JSON:
        return "json"
    if output_format is OutputFormat.PLAIN:
        return "plain"
    return "console"
