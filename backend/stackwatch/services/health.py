"""Health state machine - debounces raw check outcomes into UP/DOWN transitions.

Two ideas are tracked side by side and must not be confused:

- ``last_state_ok`` is the raw result of the most recent single check.
- ``state`` is the debounced health. It only flips once a streak of
  same-result checks reaches the configured threshold, and the flip is
  what opens or closes an incident.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class HealthState(str, Enum):
    UNKNOWN = "unknown"
    UP = "up"
    DOWN = "down"


class Transition(str, Enum):
    WENT_DOWN = "down"
    WENT_UP = "up"


@dataclass(frozen=True)
class Thresholds:
    """Streak lengths needed before a state change is reported."""
    fail: int = 2
    recovery: int = 2

    def __post_init__(self):
        if self.fail < 1 or self.recovery < 1:
            raise ValueError("Thresholds must be at least 1")


@dataclass(frozen=True)
class HealthSnapshot:
    """Streaks and states as stored on a monitor."""
    fail_streak: int = 0
    ok_streak: int = 0
    last_state_ok: Optional[bool] = None
    state: HealthState = HealthState.UNKNOWN


@dataclass(frozen=True)
class HealthUpdate:
    """The next snapshot plus the transition this check caused, if any."""
    snapshot: HealthSnapshot
    transition: Optional[Transition] = None


def evaluate(previous: HealthSnapshot, ok: bool, thresholds: Thresholds) -> HealthUpdate:
    """Fold one check outcome into the previous snapshot.

    A success resets the fail streak and extends the ok streak, and a
    failure does the opposite, so at most one streak is ever non-zero.
    DOWN is reported on the check where the fail streak reaches the fail
    threshold while the monitor is not already down; UP likewise for the
    ok streak and the recovery threshold.
    """
    if ok:
        fail_streak, ok_streak = 0, previous.ok_streak + 1
    else:
        fail_streak, ok_streak = previous.fail_streak + 1, 0

    state = previous.state
    transition = None

    if not ok and fail_streak >= thresholds.fail and state != HealthState.DOWN:
        state = HealthState.DOWN
        transition = Transition.WENT_DOWN
    elif ok and ok_streak >= thresholds.recovery and state != HealthState.UP:
        state = HealthState.UP
        transition = Transition.WENT_UP

    return HealthUpdate(
        snapshot=HealthSnapshot(
            fail_streak=fail_streak,
            ok_streak=ok_streak,
            last_state_ok=ok,
            state=state,
        ),
        transition=transition,
    )
