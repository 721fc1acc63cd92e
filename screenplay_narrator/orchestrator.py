"""Fan one generation request out to many targets and gather their outcomes."""

import asyncio
import logging
import time

from screenplay_narrator.tracker import RequestTracker

logger = logging.getLogger(__name__)


class GenerationOrchestrator:
    """Runs one generation call per target concurrently.

    ``call(target, params, token)`` is the transport. It must raise promptly
    once ``token`` is cancelled. Results land in ``results`` as each target
    settles, so callers can read a partial map at any time; ``primary`` is
    the first successful result by settlement order.
    """

    def __init__(self, call, tracker: RequestTracker | None = None, clock=time.time):
        self.call = call
        self.tracker = tracker or RequestTracker(clock=clock)
        self._clock = clock
        self.results: dict[str, dict] = {}
        self.primary: tuple[str, object] | None = None

    async def generate_for_targets(self, params, targets: list[str], on_each_complete=None) -> dict[str, dict]:
        """Resolve once every target has succeeded, failed, or been cancelled.

        Never raises because of an individual target. ``on_each_complete``
        runs the moment each successful target settles.
        """
        self.results = {}
        self.primary = None
        settled: list[str] = []

        await asyncio.gather(*(
            self._run_target(target, params, on_each_complete, settled)
            for target in dict.fromkeys(targets)
        ))

        for target in settled:
            if self.results[target]["success"]:
                self.primary = (target, self.results[target]["data"])
                break
        if self.primary is None:
            logger.info("No target succeeded out of %d", len(self.results))
        return self.results

    async def _run_target(self, target: str, params, on_each_complete, settled: list[str]) -> None:
        token = self.tracker.register(target)
        if token is None:
            self.results[target] = {
                "success": False,
                "error": "A request for this target is already in flight",
                "cancelled": False,
                "completed_at": self._clock(),
            }
            settled.append(target)
            return

        try:
            data = await self.call(target, params, token)
        except Exception as e:
            cancelled = token.is_cancelled
            self.results[target] = {
                "success": False,
                "error": str(e) or type(e).__name__,
                "cancelled": cancelled,
                "completed_at": self._clock(),
            }
            settled.append(target)
            self.tracker.complete(target, success=False, error=str(e), token=token)
            if cancelled:
                logger.info("Generation for %s cancelled", target)
            else:
                logger.warning("Generation for %s failed: %s", target, e)
            return

        if token.is_cancelled:
            # The result arrived after cancellation; it is not acted on
            self.results[target] = {
                "success": False,
                "error": "Cancelled",
                "cancelled": True,
                "completed_at": self._clock(),
            }
            settled.append(target)
            self.tracker.complete(target, success=False, error="Cancelled", token=token)
            return

        self.results[target] = {"success": True, "data": data, "completed_at": self._clock()}
        settled.append(target)
        self.tracker.complete(target, success=True, token=token)
        logger.info("Generation for %s completed", target)
        if on_each_complete:
            try:
                on_each_complete(target, data)
            except Exception:
                logger.exception("on_each_complete failed for %s", target)

    def cancel(self, target: str) -> None:
        self.tracker.cancel(target)

    def cancel_all(self) -> None:
        self.tracker.cancel_all()
