"""Cooperative cancellation signal handed to step bodies."""

from __future__ import annotations

import asyncio
from typing import Optional

from .errors import ScenarioCancelledError


class CancellationToken:
    """Flag a running scenario can poll or await to stop early."""

    def __init__(self) -> None:
        self._event: Optional[asyncio.Event] = None
        self._cancelled = False
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: Optional[str] = None) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self.reason = reason
        if self._event is not None:
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise ScenarioCancelledError(self.reason or "Scenario was cancelled")

    async def wait(self) -> None:
        # The event is created lazily so the token can be built outside a running loop.
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        await self._event.wait()
