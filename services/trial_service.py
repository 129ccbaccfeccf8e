"""
Trial and access policy for 3-day (72 hour) trial periods
"""
from typing import Optional

from models.user import PlanType, User
from utils.shared_utils import now_ms

# 72 hours in milliseconds, the same for every user
TRIAL_DURATION_MS = 3 * 24 * 60 * 60 * 1000


def trial_expires_at(user: User) -> int:
    return user.trial_start_date + TRIAL_DURATION_MS


def is_trial_active(user: User, now: Optional[int] = None) -> bool:
    """
    Check if a user's plan currently grants access.

    Any plan other than TRIAL counts as active with no expiry: paid plans
    are set by an administrator and never reconciled against payments.
    A TRIAL is active strictly before trial_start_date + 72h.

    Args:
        user: User object to check
        now: current time in ms (defaults to the wall clock)

    Returns:
        True if the plan is active, False otherwise
    """
    if user.plan != PlanType.TRIAL:
        return True
    if now is None:
        now = now_ms()
    return now < trial_expires_at(user)


def check_access(user: Optional[User], now: Optional[int] = None) -> bool:
    """
    Gate for creation and scheduling features.

    Administrators never pass: they work from the admin surface.
    Side-effect free, safe to call on every request.
    """
    if user is None:
        return False
    if user.is_admin:
        return False
    if user.is_blocked:
        return False
    return is_trial_active(user, now)


def format_time_left(end_time: int, now: Optional[int] = None) -> str:
    """Countdown shown next to a trial, e.g. "2d 05:04:03" or "Expirado" """
    if now is None:
        now = now_ms()
    diff = end_time - now
    if diff <= 0:
        return "Expirado"

    days, rest = divmod(diff, 24 * 60 * 60 * 1000)
    hours, rest = divmod(rest, 60 * 60 * 1000)
    minutes, rest = divmod(rest, 60 * 1000)
    seconds = rest // 1000
    return f"{days}d {hours:02d}:{minutes:02d}:{seconds:02d}"
