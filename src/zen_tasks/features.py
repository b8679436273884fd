# src/zen_tasks/features.py

"""
Subscription feature gates.

Pure predicates over the user's tier. Callers apply them before storing or
starting anything; the recurrence resolver and timer engine never look at tiers.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from .config import DEFAULT_POMODORO_SETTINGS, PomodoroSettings
from .recurrence.recurrence_models import RecurrencePattern

FREE_MAX_REMINDERS_PER_TASK = 1
PREMIUM_MAX_REMINDERS_PER_TASK = 10


def can_set_recurrence_interval(is_premium: bool) -> bool:
    """Free tier: interval is always 1."""
    return bool(is_premium)


def gate_recurrence_pattern(pattern: RecurrencePattern | None, is_premium: bool) -> RecurrencePattern | None:
    """Return the pattern the user is allowed to store (interval forced to 1 on free tier)."""
    if pattern is None or can_set_recurrence_interval(is_premium) or pattern.interval == 1:
        return pattern
    return replace(pattern, interval=1)


def can_customize_pomodoro(is_premium: bool) -> bool:
    return bool(is_premium)


def effective_pomodoro_settings(requested: PomodoroSettings | None, is_premium: bool) -> PomodoroSettings:
    """Free tier always runs the fixed 25/5/15 x4 cycle."""
    if requested is None or not can_customize_pomodoro(is_premium):
        return DEFAULT_POMODORO_SETTINGS
    return requested


def max_reminders(is_premium: bool) -> int:
    return PREMIUM_MAX_REMINDERS_PER_TASK if is_premium else FREE_MAX_REMINDERS_PER_TASK


def can_add_more_reminders(current_count: int, is_premium: bool) -> bool:
    return int(current_count) < max_reminders(is_premium)


def task_has_premium_features(task: Any) -> bool:
    """True if a downgrade to the free tier would affect this task."""
    reminders = getattr(task, "reminders", None) or []
    if len(reminders) > FREE_MAX_REMINDERS_PER_TASK:
        return True

    recurrence = getattr(task, "recurrence", None)
    return bool(recurrence is not None and recurrence.is_active and recurrence.interval > 1)
