"""
Join of the sleep collection with every secondary collection, one record per
night.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from oura_trends.config import DAY_CUTOFF_HOUR
from oura_trends.schemas import BodyComposition, DailyRecord
from oura_trends.services.clock import parse_instant, shift_hour
from oura_trends.services.indexer import (
    Cardinality,
    HeartRateAccumulator,
    IndexedCollection,
    Sample,
)
from oura_trends.utils.logging_config import get_logger

logger = get_logger(__name__)

LONG_SLEEP = "long_sleep"

ACTIVITY_FIELDS = (
    "steps",
    "active_calories",
    "total_calories",
    "equivalent_walking_distance",
    "high_activity_time",
    "medium_activity_time",
    "low_activity_time",
    "sedentary_time",
    "resting_time",
)

_EMPTY_ONE = IndexedCollection({}, Cardinality.ONE)
_EMPTY_MANY = IndexedCollection({}, Cardinality.MANY)


def workout_duration(workouts: Iterable[Sample]) -> float:
    """Seconds summed over workouts that have both a start and an end."""
    total = 0.0
    for w in workouts:
        if w.get("start_datetime") and w.get("end_datetime"):
            total += (parse_instant(w["end_datetime"]) - parse_instant(w["start_datetime"])).total_seconds()
    return total


def _readiness_fields(sample: Sample) -> Dict[str, Any]:
    readiness = sample.get("readiness") or {}
    return {
        "readiness_score": readiness.get("score"),
        "temperature_deviation": readiness.get("temperature_deviation"),
        "temperature_trend_deviation": readiness.get("temperature_trend_deviation"),
    }


def _activity_fields(activity: Sample) -> Dict[str, Any]:
    fields = {name: activity.get(name) for name in ACTIVITY_FIELDS}
    fields["activity_score"] = activity.get("score")
    return fields


def _spo2_fields(spo2: Sample) -> Dict[str, Any]:
    percentage = spo2.get("spo2_percentage") or {}
    return {
        "spo2_average": percentage.get("average") or None,
        "breathing_disturbance_index": spo2.get("breathing_disturbance_index") or None,
    }


def _body_fields(body: Optional[BodyComposition]) -> Dict[str, Any]:
    body = body or BodyComposition()
    # zero readings from a scale mean "not measured"
    return {name: value or None for name, value in body.model_dump().items()}


def reconcile_one(
    sample: Sample,
    secondaries: Mapping[str, IndexedCollection],
    heart_rate: Mapping[str, HeartRateAccumulator],
    body_composition: Mapping[str, BodyComposition],
    cutoff_hour: int = DAY_CUTOFF_HOUR,
) -> DailyRecord:
    """Merge one sleep period with the secondary entries of its day."""
    day = sample.get("day")
    bedtime_start = parse_instant(sample["bedtime_start"])
    bedtime_end = parse_instant(sample["bedtime_end"])

    activity = secondaries.get("activity", _EMPTY_ONE).lookup(day)
    spo2 = secondaries.get("spo2", _EMPTY_ONE).lookup(day)
    stress = secondaries.get("stress", _EMPTY_ONE).lookup(day)
    vo2 = secondaries.get("vo2", _EMPTY_ONE).lookup(day)
    day_workouts = secondaries.get("workouts", _EMPTY_MANY).lookup(day)
    hr = heart_rate.get(day)

    fields: Dict[str, Any] = {
        "date": bedtime_start,
        "bedtime_start_date": bedtime_start,
        "bedtime_end_date": bedtime_end,
        "bedtime_start_hour": shift_hour(bedtime_start, cutoff_hour),
        "bedtime_end_hour": shift_hour(bedtime_end, cutoff_hour),
        **_readiness_fields(sample),
        **_activity_fields(activity),
        **_spo2_fields(spo2),
        "stress_high": stress.get("stress_high"),
        "recovery_high": stress.get("recovery_high"),
        "vo2_max": vo2.get("vo2_max"),
        "hr_daily_average": hr.mean() if hr else None,
        "workout_count": len(day_workouts) or None,
        "workout_duration": workout_duration(day_workouts) or None,
        **_body_fields(body_composition.get(day)),
    }
    # the raw sleep document is carried over as-is and wins on name clashes
    fields.update(sample)
    return DailyRecord(**fields)


def reconcile(
    primary: Iterable[Sample],
    secondaries: Mapping[str, IndexedCollection],
    heart_rate: Optional[Mapping[str, HeartRateAccumulator]] = None,
    body_composition: Optional[Mapping[str, BodyComposition]] = None,
    cutoff_hour: int = DAY_CUTOFF_HOUR,
) -> List[DailyRecord]:
    """
    Build the daily series from the sleep collection.

    Only long sleeps are kept: the shifted-hour axis assumes a single
    overnight span, which naps do not have. Secondary collections are looked
    up by the sleep's ``day``; a missing entry leaves that source's fields at
    None. The primary order is preserved, nothing is re-sorted.

    Args:
        primary: Oura sleep documents, assumed chronological
        secondaries: indexed collections keyed by name
            ("activity", "spo2", "stress", "vo2" with ONE cardinality,
            "workouts" with MANY); absent names count as empty
        heart_rate: day -> accumulated bpm samples
        body_composition: day -> scale values
        cutoff_hour: hour after which a time belongs to the next night
    """
    heart_rate = heart_rate or {}
    body_composition = body_composition or {}

    series: List[DailyRecord] = []
    skipped = 0
    for sample in primary:
        if sample.get("type") != LONG_SLEEP:
            skipped += 1
            continue
        series.append(reconcile_one(sample, secondaries, heart_rate, body_composition, cutoff_hour))

    logger.info(f"Reconciled {len(series)} night(s), skipped {skipped} non-long sleep period(s)")
    return series
