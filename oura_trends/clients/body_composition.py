"""
Body-composition sources consumed by the reconciler.

A source is any awaitable callable ``(start_date, end_date) -> {day: BodyComposition}``.
Parsing vendor CSV exports happens elsewhere; their already-parsed output can
be wrapped in ``StaticBodyComposition``.
"""

from datetime import date
from typing import Dict, Mapping, Optional, Protocol, Union

from oura_trends.schemas import BodyComposition

BODY_FIELDS = ("weight", "fat_mass", "bone_mass", "muscle_mass", "hydration")


class BodyCompositionSource(Protocol):
    async def __call__(self, start_date: date, end_date: date) -> Dict[str, BodyComposition]:
        ...


class EmptyBodyComposition:
    """Source used when no scale is configured."""

    async def __call__(self, start_date: date, end_date: date) -> Dict[str, BodyComposition]:
        return {}


class StaticBodyComposition:
    """
    Wraps an already-parsed ``day -> {weight, fat_mass, ...}`` mapping.
    Plain dicts are converted to BodyComposition; missing keys become None.
    """

    def __init__(self, by_day: Mapping[str, Union[BodyComposition, Mapping[str, Optional[float]]]]) -> None:
        self._by_day: Dict[str, BodyComposition] = {}
        for day, values in by_day.items():
            if isinstance(values, BodyComposition):
                self._by_day[day] = values
            else:
                self._by_day[day] = BodyComposition(**{k: values.get(k) for k in BODY_FIELDS})

    async def __call__(self, start_date: date, end_date: date) -> Dict[str, BodyComposition]:
        start, end = start_date.isoformat(), end_date.isoformat()
        return {day: values for day, values in self._by_day.items() if start <= day <= end}
