"""
Day-keyed lookup structures built once per query and thrown away after
reconciliation.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

Sample = Dict[str, Any]


class Cardinality(Enum):
    ONE = "one"    # one sample per day, first one wins
    MANY = "many"  # every sample kept, in arrival order


class IndexedCollection(Mapping[str, Union[Sample, List[Sample]]]):
    """
    Read-only mapping from calendar day to the sample (ONE) or the list of
    samples (MANY) for that day.
    """

    def __init__(self, by_day: Dict[str, Any], cardinality: Cardinality) -> None:
        self._by_day = by_day
        self.cardinality = cardinality

    def __getitem__(self, day: str) -> Union[Sample, List[Sample]]:
        return self._by_day[day]

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_day)

    def __len__(self) -> int:
        return len(self._by_day)

    def lookup(self, day: str) -> Union[Sample, List[Sample]]:
        """Entry for ``day``; an empty dict or empty list when the day is absent."""
        default: Union[Sample, List[Sample]] = [] if self.cardinality is Cardinality.MANY else {}
        return self._by_day.get(day, default)


def index_by_day(samples: Iterable[Sample], cardinality: Cardinality = Cardinality.ONE) -> IndexedCollection:
    """
    Key samples by their ``day`` field.

    With ONE cardinality a later sample for an already-indexed day is dropped.
    Samples without a ``day`` are skipped and so never show up at lookup time.
    """
    by_day: Dict[str, Any] = {}
    for sample in samples:
        day = sample.get("day")
        if day is None:
            continue
        if cardinality is Cardinality.MANY:
            by_day.setdefault(day, []).append(sample)
        elif day not in by_day:
            by_day[day] = sample
    return IndexedCollection(by_day, cardinality)


@dataclass
class HeartRateAccumulator:
    sum: float = 0
    count: int = 0

    def add(self, bpm: float) -> None:
        self.sum += bpm
        self.count += 1

    def mean(self) -> Optional[int]:
        """Mean bpm rounded half up, None without samples."""
        if not self.count:
            return None
        return math.floor(self.sum / self.count + 0.5)


def heart_rate_by_day(samples: Iterable[Sample]) -> Dict[str, HeartRateAccumulator]:
    """Single pass sum/count per day, the day being the date part of ``timestamp``."""
    by_day: Dict[str, HeartRateAccumulator] = {}
    for sample in samples:
        timestamp = sample.get("timestamp")
        bpm = sample.get("bpm")
        if not timestamp or bpm is None:
            continue
        by_day.setdefault(timestamp[:10], HeartRateAccumulator()).add(bpm)
    return by_day
