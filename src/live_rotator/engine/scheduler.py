"""Clock, cancellation token and delay timer used between ticks."""

import asyncio
import time
from typing import Optional, Protocol


class Clock(Protocol):
    """Clock interface for testable time management."""

    def now(self) -> float:
        """Return current time in seconds."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend for the given number of seconds."""
        ...


class MonotonicClock:
    """Default clock implementation using time.monotonic and asyncio.sleep."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class CancellationToken:
    """One-shot signal telling a run to stop at its next checkpoint."""

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


class DelayTimer:
    """
    Countdown between ticks that a cancellation token can cut short.

    The duration is fixed when the wait starts; changing the loop's delay
    afterwards only affects the next wait.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or MonotonicClock()
        self._deadline: Optional[float] = None
        self.duration: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._deadline is not None

    def remaining(self) -> Optional[float]:
        """Seconds left in the current wait, or None when not waiting."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self.clock.now())

    async def wait(self, seconds: float, token: CancellationToken) -> bool:
        """
        Wait for `seconds` unless the token is cancelled first.

        Returns:
            True if the full delay elapsed, False if the wait was cancelled
        """
        if token.cancelled:
            return False

        self.duration = seconds
        self._deadline = self.clock.now() + seconds
        sleeper = asyncio.ensure_future(self.clock.sleep(seconds))
        canceller = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait({sleeper, canceller}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, canceller):
                if not task.done():
                    task.cancel()
            await asyncio.gather(sleeper, canceller, return_exceptions=True)
            self._deadline = None

        return not token.cancelled
