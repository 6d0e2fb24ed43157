"""
Join-window gating for video appointments.
"""

from datetime import datetime, timedelta

from .models import JoinWindow

DEFAULT_LEAD_MINUTES = 10


def can_join(
    scheduled_at: datetime,
    now: datetime,
    lead_minutes: int,
    trail_minutes: int,
) -> bool:
    """
    Decide whether "join meeting" is enabled at ``now``.

    True iff ``scheduled_at - lead <= now <= scheduled_at + trail``. Both
    instants must already be parsed and timezone-aware.
    """
    opens_at = scheduled_at - timedelta(minutes=lead_minutes)
    closes_at = scheduled_at + timedelta(minutes=trail_minutes)
    return opens_at <= now <= closes_at


class JoinWindowGate:
    """
    Stateless predicate for the "join meeting" action.

    The trail window is product policy and has no default; it has to come
    from the caller or from configuration. Re-evaluating as time passes is
    the caller's job, the gate holds no timers.
    """

    def __init__(self, *, trail_minutes: int, lead_minutes: int = DEFAULT_LEAD_MINUTES):
        if lead_minutes < 0 or trail_minutes < 0:
            raise ValueError("lead_minutes and trail_minutes must not be negative")
        self.lead_minutes = lead_minutes
        self.trail_minutes = trail_minutes

    def can_join(self, scheduled_at: datetime, now: datetime) -> bool:
        return can_join(scheduled_at, now, self.lead_minutes, self.trail_minutes)

    def window_for(self, scheduled_at: datetime) -> JoinWindow:
        """Return the interval during which joining is allowed."""
        return JoinWindow(
            opens_at=scheduled_at - timedelta(minutes=self.lead_minutes),
            closes_at=scheduled_at + timedelta(minutes=self.trail_minutes),
        )
