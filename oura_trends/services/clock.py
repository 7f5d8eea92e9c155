"""
Shifted-hour representation of bed and wake times.

Hours later than the cutoff are mapped to ``h - 24`` so that a bedtime at
23:30 becomes -0.5 and sits next to a bedtime at 00:15 (0.25) instead of on
the opposite end of a 0-24 axis.
"""

from datetime import datetime
from typing import Tuple

from oura_trends.config import DAY_CUTOFF_HOUR


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 instant as returned by the Oura API."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def shift_hour(moment: datetime, cutoff_hour: int = DAY_CUTOFF_HOUR) -> float:
    """Wall-clock time of ``moment`` as fractional hours on the shifted axis."""
    hours = moment.hour
    if hours > cutoff_hour:
        hours -= 24
    return hours + moment.minute / 60


def unshift_hour(shifted: float) -> float:
    """Map a shifted hour back onto the 0-24 clock."""
    return shifted + 24 if shifted < 0 else shifted


def shifted_domain(cutoff_hour: int = DAY_CUTOFF_HOUR) -> Tuple[int, int]:
    """Axis range covered by shifted hours: one full day ending at the cutoff."""
    return cutoff_hour - 24, cutoff_hour
