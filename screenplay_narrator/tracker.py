"""Per-target request lifecycle tracking with individual and bulk cancellation."""

import logging
import time

from screenplay_narrator.cancellation import CancellationToken
from screenplay_narrator.models import (
    CANCELLED,
    COMPLETED,
    FAILED,
    PENDING,
    RequestState,
)

logger = logging.getLogger(__name__)


class RequestTracker:
    """Tracks one in-flight generation request per target.

    A target is *active* while it holds a cancellation token. States outlive
    their requests until ``clear_history`` so finished targets stay visible.
    """

    def __init__(self, clock=time.time):
        self._clock = clock
        self._tokens: dict[str, CancellationToken] = {}
        self._states: dict[str, RequestState] = {}

    @property
    def states(self) -> dict[str, RequestState]:
        return dict(self._states)

    def register(self, target: str) -> CancellationToken | None:
        """Start tracking a request and return its cancellation token.

        Returns None, leaving the running request untouched, if the target
        already has one in flight.
        """
        if target in self._tokens:
            logger.warning("Request for %s already in flight; ignoring register", target)
            return None
        token = CancellationToken()
        self._tokens[target] = token
        self._states[target] = RequestState(status=PENDING, start_time=self._clock())
        logger.debug("Registered request for %s", target)
        return token

    def _finish(self, target: str, status: str, error: str | None = None) -> None:
        state = self._states[target]
        now = self._clock()
        state.status = status
        state.error = error
        state.end_time = now
        state.duration = now - state.start_time
        if status == CANCELLED:
            state.cancelled = True

    def complete(
        self,
        target: str,
        success: bool = True,
        error: str | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        """Record the outcome of a request that settled on its own.

        A request that was already cancelled keeps its cancelled state. When
        ``token`` is given, the call is ignored unless that token is still the
        target's active one, so a late settle from a cancelled request cannot
        touch a newer request registered under the same target.
        """
        if token is not None and self._tokens.get(target) is not token:
            logger.debug("Ignoring stale completion for %s", target)
            return
        self._tokens.pop(target, None)
        state = self._states.get(target)
        if state is None or state.status != PENDING:
            return
        self._finish(target, COMPLETED if success else FAILED, error)
        logger.debug("Request for %s %s", target, state.status)

    def cancel(self, target: str) -> None:
        token = self._tokens.pop(target, None)
        if token is None:
            logger.debug("No active request for %s to cancel", target)
            return
        token.cancel()
        self._finish(target, CANCELLED)
        logger.info("Cancelled request for %s", target)

    def cancel_all(self) -> None:
        for token in self._tokens.values():
            token.cancel()
        self._tokens = {}
        for target, state in self._states.items():
            if state.status == PENDING:
                self._finish(target, CANCELLED)

    def status(self, target: str) -> str | None:
        state = self._states.get(target)
        return state.status if state else None

    def get_state(self, target: str) -> RequestState | None:
        return self._states.get(target)

    def active_targets(self) -> list[str]:
        return list(self._tokens)

    def has_active(self) -> bool:
        return bool(self._tokens)

    def clear_history(self) -> None:
        """Forget recorded states. In-flight requests keep their tokens."""
        self._states = {
            target: state for target, state in self._states.items() if target in self._tokens
        }

    def summary(self) -> dict[str, int]:
        counts = {PENDING: 0, COMPLETED: 0, FAILED: 0, CANCELLED: 0}
        for state in self._states.values():
            counts[state.status] += 1
        return counts
