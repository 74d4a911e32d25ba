"""Per-upstream circuit breaker.

States:
- CLOSED: calls go through; outcomes land in a sliding window of the last
  ``sliding_window_size`` calls. Once the window holds ``minimum_calls``
  outcomes and the failure percentage reaches ``failure_rate_threshold``,
  the breaker opens.
- OPEN: calls are refused until ``wait_duration`` seconds have passed.
- HALF_OPEN: ``permitted_calls_in_half_open`` trial calls go through. A
  trial success closes the breaker and clears the window; a trial failure
  re-opens it and restarts the cool-down.

One breaker per upstream, shared by every request in the process. All
state lives behind a single lock.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = 'closed'
    OPEN = 'open'
    HALF_OPEN = 'half_open'


@dataclass
class CircuitBreaker:
    name: str
    failure_rate_threshold: float = 50.0
    minimum_calls: int = 10
    sliding_window_size: int = 10
    wait_duration: float = 30.0
    permitted_calls_in_half_open: int = 1
    clock: Callable[[], float] = time.monotonic

    state: CircuitState = field(default=CircuitState.CLOSED)
    opened_at: float = field(default=0.0)
    half_open_calls: int = field(default=0)
    generation: int = field(default=0)
    _outcomes: deque = field(default_factory=deque, repr=False)
    _lock: Lock = field(default_factory=Lock, repr=False)

    def __post_init__(self):
        self.sliding_window_size = max(1, self.sliding_window_size)
        self.minimum_calls = max(1, min(self.minimum_calls, self.sliding_window_size))
        self.permitted_calls_in_half_open = max(1, self.permitted_calls_in_half_open)
        self._outcomes = deque(maxlen=self.sliding_window_size)

    def acquire(self) -> Optional[int]:
        """Admit a call, returning the generation it belongs to, or None if refused.

        Every state transition starts a new generation. Passing the
        generation back to ``record_success``/``record_failure`` makes a
        call that finishes after a transition a no-op.
        """
        with self._lock:
            if self.state == CircuitState.CLOSED:
                return self.generation

            if self.state == CircuitState.OPEN:
                if self.clock() - self.opened_at < self.wait_duration:
                    return None
                self._transition_to(CircuitState.HALF_OPEN)

            if self.half_open_calls < self.permitted_calls_in_half_open:
                self.half_open_calls += 1
                return self.generation
            return None

    def allow_request(self) -> bool:
        """Return True if a call may go to the upstream right now."""
        return self.acquire() is not None

    def _is_stale(self, generation):
        return generation is not None and generation != self.generation

    def record_success(self, generation: Optional[int] = None):
        with self._lock:
            if self._is_stale(generation):
                return
            if self.state == CircuitState.HALF_OPEN:
                self._transition_to(CircuitState.CLOSED)
            elif self.state == CircuitState.CLOSED:
                self._record_outcome(True)

    def record_failure(self, generation: Optional[int] = None):
        with self._lock:
            if self._is_stale(generation):
                return
            if self.state == CircuitState.HALF_OPEN:
                self._transition_to(CircuitState.OPEN)
            elif self.state == CircuitState.CLOSED:
                self._record_outcome(False)

    def _record_outcome(self, ok: bool):
        self._outcomes.append(ok)
        if len(self._outcomes) >= self.minimum_calls and \
                self._failure_rate() >= self.failure_rate_threshold:
            self._transition_to(CircuitState.OPEN)

    def _failure_rate(self) -> float:
        if not self._outcomes:
            return 0.0
        failures = sum(1 for ok in self._outcomes if not ok)
        return failures * 100.0 / len(self._outcomes)

    def _transition_to(self, new_state: CircuitState):
        old_state = self.state
        self.state = new_state
        self.half_open_calls = 0
        self.generation += 1

        if new_state == CircuitState.CLOSED:
            self._outcomes.clear()
            logger.info('Circuit [%s]: %s -> CLOSED (recovered)', self.name, old_state.value)
        elif new_state == CircuitState.OPEN:
            self.opened_at = self.clock()
            logger.warning(
                'Circuit [%s]: %s -> OPEN (failure rate %.1f%% over %d calls)',
                self.name, old_state.value, self._failure_rate(), len(self._outcomes),
            )
            self._outcomes.clear()
        else:
            logger.info('Circuit [%s]: %s -> HALF_OPEN (testing)', self.name, old_state.value)

    def force_open(self):
        with self._lock:
            self._transition_to(CircuitState.OPEN)

    def force_close(self):
        with self._lock:
            self._transition_to(CircuitState.CLOSED)

    def get_status(self) -> dict:
        with self._lock:
            retry_in = 0.0
            if self.state == CircuitState.OPEN:
                retry_in = max(0.0, self.wait_duration - (self.clock() - self.opened_at))
            return {
                'name': self.name,
                'state': self.state.value,
                'buffered_calls': len(self._outcomes),
                'failure_rate': round(self._failure_rate(), 1),
                'time_until_retry': round(retry_in, 1),
            }


# ============================================================================
# GLOBAL REGISTRY
# ============================================================================

_breakers: Dict[str, CircuitBreaker] = {}
_registry_lock = Lock()


def get_breaker(name: str, **settings) -> CircuitBreaker:
    """Get or create the process-wide breaker for an upstream.

    Settings only apply when the breaker is first created.
    """
    with _registry_lock:
        if name not in _breakers:
            _breakers[name] = CircuitBreaker(name=name, **settings)
        return _breakers[name]


def get_all_breakers() -> Dict[str, dict]:
    with _registry_lock:
        breakers = list(_breakers.values())
    return {breaker.name: breaker.get_status() for breaker in breakers}


def reset_all_breakers():
    """Drop every registered breaker (used when the app is rebuilt)."""
    with _registry_lock:
        _breakers.clear()
