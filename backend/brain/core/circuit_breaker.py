"""
Circuit breaker for outbound calls (text-completion service, Slack Web API).

Behavior:
- CLOSED: calls pass through; outcomes are kept for a sliding time window
- OPEN: once the window holds at least `min_requests` outcomes and the
  failure rate reaches `failure_threshold`, calls are rejected for
  `open_duration_seconds`
- HALF_OPEN: after the open period a single probe call is let through;
  success closes the circuit, failure reopens it
"""
import time
from collections import deque
from enum import Enum
from threading import Lock
from typing import Any, Awaitable, Callable, Deque, Optional, Tuple

from brain.core.logging import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpenError(Exception):
    """Raised when the circuit is open and the call is rejected."""


class CircuitBreaker:
    """Failure-rate circuit breaker guarding an async dependency."""

    def __init__(
        self,
        name: str,
        failure_threshold: float = 0.5,
        time_window_seconds: int = 60,
        open_duration_seconds: int = 30,
        min_requests: int = 5,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.time_window_seconds = time_window_seconds
        self.open_duration_seconds = open_duration_seconds
        self.min_requests = min_requests

        self._state = CircuitState.CLOSED
        self._lock = Lock()
        self._outcomes: Deque[Tuple[float, bool]] = deque()
        self._opened_at: Optional[float] = None
        self._probe_in_flight = False

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._refresh(time.time())
            return self._state

    def _refresh(self, now: float) -> None:
        cutoff = now - self.time_window_seconds
        while self._outcomes and self._outcomes[0][0] < cutoff:
            self._outcomes.popleft()

        if (
            self._state == CircuitState.OPEN
            and self._opened_at is not None
            and now - self._opened_at >= self.open_duration_seconds
        ):
            self._state = CircuitState.HALF_OPEN
            self._probe_in_flight = False
            logger.info("circuit_breaker_half_open", circuit_breaker=self.name)

    def _open(self, now: float, **fields: Any) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = now
        self._outcomes.clear()
        logger.warning("circuit_breaker_opened", circuit_breaker=self.name, **fields)

    def _acquire(self) -> None:
        with self._lock:
            self._refresh(time.time())
            if self._state == CircuitState.OPEN:
                raise CircuitBreakerOpenError(
                    f"Circuit breaker {self.name} is OPEN. Service unavailable."
                )
            if self._state == CircuitState.HALF_OPEN:
                if self._probe_in_flight:
                    raise CircuitBreakerOpenError(
                        f"Circuit breaker {self.name} is HALF_OPEN. Probe already in flight."
                    )
                self._probe_in_flight = True

    def _record(self, success: bool) -> None:
        now = time.time()
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._probe_in_flight = False
                if success:
                    self._state = CircuitState.CLOSED
                    self._opened_at = None
                    logger.info("circuit_breaker_closed", circuit_breaker=self.name)
                else:
                    self._open(now, reason="half_open_probe_failed")
                return

            self._outcomes.append((now, success))
            self._refresh(now)
            total = len(self._outcomes)
            if total < self.min_requests:
                return
            failures = sum(1 for _, ok in self._outcomes if not ok)
            error_rate = failures / total
            if error_rate >= self.failure_threshold:
                self._open(now, error_rate=error_rate, failures=failures, total=total)

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """
        Await `func(*args, **kwargs)` under circuit breaker protection.

        Raises:
            CircuitBreakerOpenError if the call is rejected without being attempted.
        """
        self._acquire()
        try:
            result = await func(*args, **kwargs)
        except BaseException:
            # Cancellation counts as a failure so a half-open probe is released.
            self._record(False)
            raise
        self._record(True)
        return result

    def snapshot(self) -> dict:
        """Current state for health reporting."""
        with self._lock:
            self._refresh(time.time())
            total = len(self._outcomes)
            failures = sum(1 for _, ok in self._outcomes if not ok)
            return {
                "name": self.name,
                "state": self._state.value,
                "recent_requests": total,
                "recent_failures": failures,
                "error_rate": failures / total if total else 0.0,
                "opened_at": self._opened_at,
            }
