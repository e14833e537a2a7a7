"""Trait bridges forward scenario tags to a host test framework."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import structlog

LOGGER = structlog.get_logger("bddchain")


@runtime_checkable
class TraitBridge(Protocol):
    def add_tag(self, tag: str) -> None:
        ...


class NullTraitBridge:
    """Bridge that drops every tag."""

    def add_tag(self, tag: str) -> None:
        return None


class LoggingTraitBridge:
    """Bridge that emits one structured log event per tag."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self._logger = logger or LOGGER

    def add_tag(self, tag: str) -> None:
        self._logger.info("tag_added", tag=tag)
