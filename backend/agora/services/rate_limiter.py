"""
Per-user action rate limiter.

WHAT THIS DOES:
Throttles how often one user may perform one kind of mutation
(create an argument, rate, run an analysis...). Fixed window per
(subject, action) key:

- no entry, or the window has elapsed → start a new window with count 1, allow
- count already at the maximum       → deny, count unchanged
- otherwise                          → count + 1, allow

This is a best-effort throttle held in process memory. It is not shared
between workers and is lost on restart; uniqueness and atomicity guarantees
live in the database, not here.

USAGE:
    limiter = RateLimiter()
    if not limiter.check_rate_limit(user_id, "create_argument", 3, 60_000):
        raise HTTPException(status_code=429, ...)
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from agora.config import Settings

logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.monotonic() * 1000


@dataclass
class _Window:
    count: int
    started_at: float


@dataclass(frozen=True)
class RateLimitPolicy:
    max_count: int
    window_ms: int

    @property
    def window_seconds(self) -> int:
        return max(1, self.window_ms // 1000)


class RateLimiter:
    """
    Fixed-window counter keyed by (subject_id, action_type).

    Pass a clock returning milliseconds to simulate time in tests.
    """

    def __init__(self, clock: Callable[[], float] = _now_ms):
        self._clock = clock
        self._windows: dict[tuple[str, str], _Window] = {}

    def check_rate_limit(
        self,
        subject_id: str,
        action_type: str,
        max_count: int = 5,
        window_ms: int = 60_000,
    ) -> bool:
        """
        Record an attempt and report whether it is allowed.

        Never raises; a denied attempt does not count against the window.
        """
        key = (subject_id, action_type)
        now = self._clock()
        window = self._windows.get(key)

        if window is None or now - window.started_at > window_ms:
            self._windows[key] = _Window(count=1, started_at=now)
            return True

        if window.count >= max_count:
            logger.warning(
                f"Rate limit hit: subject={subject_id} action={action_type} "
                f"({window.count}/{max_count} per {window_ms}ms)"
            )
            return False

        window.count += 1
        return True

    def check(self, subject_id: str, action_type: str, policy: RateLimitPolicy) -> bool:
        """check_rate_limit() with the limits taken from a policy."""
        return self.check_rate_limit(
            subject_id, action_type, policy.max_count, policy.window_ms
        )

    def reset(self, subject_id: Optional[str] = None) -> None:
        """Forget all windows, or only those of one subject."""
        if subject_id is None:
            self._windows.clear()
            return
        for key in [k for k in self._windows if k[0] == subject_id]:
            del self._windows[key]


# =============================================================================
# POLICIES
# =============================================================================

CREATE_ARGUMENT = "create_argument"
RATE_ARGUMENT = "rate_argument"
CREATE_DEBATE = "create_debate"
ANALYZE_ARGUMENT = "analyze_argument"
STEEL_MAN = "steel_man"


def policy_for(action_type: str, settings: Settings) -> RateLimitPolicy:
    """Limits configured for an action type."""
    return RateLimitPolicy(
        max_count=getattr(settings, f"{action_type}_max"),
        window_ms=getattr(settings, f"{action_type}_window_ms"),
    )
