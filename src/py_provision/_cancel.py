"""Cooperative cancellation shared by every step of one operation."""

from __future__ import annotations

import asyncio

from ._errors import OperationCancelled


class CancelToken:
    """A one-shot flag the caller sets to abandon an operation.

    The same token may be handed to several concurrent operations; setting it aborts the step each one is in and
    stops them from moving on to the next candidate.

    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            msg = "operation cancelled"
            raise OperationCancelled(msg)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(cancelled={self.cancelled})"


__all__ = [
    "CancelToken",
]
