"""Predicate helpers for `then` steps."""

from __future__ import annotations

from typing import Any, Callable, Type


def true(condition: bool) -> bool:
    return bool(condition)


def equal(actual: Any, expected: Any) -> bool:
    return actual == expected


def not_none(value: Any) -> bool:
    return value is not None


def raises(exc_type: Type[BaseException], fn: Callable[[], Any]) -> bool:
    """True when ``fn()`` raises ``exc_type``; any other error propagates."""

    try:
        fn()
    except exc_type:
        return True
    return False
