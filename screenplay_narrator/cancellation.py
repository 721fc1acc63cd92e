"""Cooperative cancellation token shared between a canceller and its worker."""

import asyncio


class CancellationToken:
    """Monotonic cancellation flag.

    Workers poll ``is_cancelled`` at their suspension points, or await
    ``wait()`` to race it against a call in flight. Raising the token never
    interrupts anything by itself.
    """

    def __init__(self):
        self._cancelled = False
        self._event = None

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._event is not None:
            self._event.set()

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        if self._event is None:
            # Created lazily so tokens can be built outside a running loop
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        await self._event.wait()

    def __repr__(self):
        return f"CancellationToken(cancelled={self._cancelled})"
