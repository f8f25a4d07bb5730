"""Pure transformations the stores apply immediately before each write."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from healthhub.core.bmi import current_bmi


def completion_timestamp(
    was_completed: bool, is_completed: bool, completed_at: Optional[datetime], now: datetime
) -> Optional[datetime]:
    """Return the ``completed_at`` value a task should carry after a write."""
    if is_completed and not was_completed:
        return now
    if was_completed and not is_completed:
        return None
    return completed_at


@dataclass(frozen=True)
class BmiHistoryEntry:
    bmi: float
    weight: float
    recorded_at: datetime


def bmi_history_entry(
    previous_weight: Optional[float],
    weight: Optional[float],
    height: Optional[float],
    now: datetime,
    force: bool = False,
) -> Optional[BmiHistoryEntry]:
    """Return the history entry to append for this write, or None.

    An entry is due when the weight changed (or ``force`` is set) and both
    height and weight are present.
    """
    bmi = current_bmi(weight, height)
    if bmi is None:
        return None
    if not force and previous_weight == weight:
        return None
    return BmiHistoryEntry(bmi=bmi, weight=float(weight), recorded_at=now)
