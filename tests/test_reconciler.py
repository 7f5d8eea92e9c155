from datetime import datetime, timedelta, timezone

from conftest import sleep_doc
from oura_trends.schemas import BodyComposition
from oura_trends.services.indexer import Cardinality, heart_rate_by_day, index_by_day
from oura_trends.services.reconciler import reconcile, workout_duration

SECONDARY_FIELDS = (
    "steps", "active_calories", "total_calories", "activity_score",
    "spo2_average", "breathing_disturbance_index",
    "stress_high", "recovery_high", "vo2_max",
    "hr_daily_average", "workout_count", "workout_duration",
    "weight", "fat_mass", "bone_mass", "muscle_mass", "hydration",
)


def _secondaries(activity=(), spo2=(), stress=(), vo2=(), workouts=()):
    return {
        "activity": index_by_day(activity),
        "spo2": index_by_day(spo2),
        "stress": index_by_day(stress),
        "vo2": index_by_day(vo2),
        "workouts": index_by_day(workouts, Cardinality.MANY),
    }


def test_day_without_secondaries_still_has_bedtimes():
    series = reconcile([sleep_doc("2024-01-05")], _secondaries())

    assert len(series) == 1
    record = series[0]
    assert record.day == "2024-01-05"
    for name in SECONDARY_FIELDS:
        assert getattr(record, name) is None, name
    assert record.bedtime_start_hour == -0.5
    assert record.bedtime_end_hour == 7.25
    assert "steps" in record.model_dump()


def test_naps_are_excluded():
    primary = [
        sleep_doc("2024-01-05"),
        sleep_doc("2024-01-05", "2024-01-05T14:00:00+01:00", "2024-01-05T14:40:00+01:00", type="late_nap"),
        sleep_doc("2024-01-06", type="sleep"),
        sleep_doc("2024-01-07", "2024-01-06T23:00:00+01:00", "2024-01-07T06:00:00+01:00"),
    ]

    series = reconcile(primary, _secondaries())

    assert [r.day for r in series] == ["2024-01-05", "2024-01-07"]
    assert all(r.type == "long_sleep" for r in series)


def test_sleep_without_day_is_kept_with_null_secondaries():
    doc = sleep_doc("2024-01-05")
    del doc["day"]

    series = reconcile(
        [doc, sleep_doc("2024-01-06")],
        _secondaries(activity=[{"day": "2024-01-05", "steps": 8000}]),
    )

    assert len(series) == 2
    assert series[0].day is None
    assert series[0].steps is None
    assert series[0].workout_count is None
    assert series[0].bedtime_start_hour == -0.5
    assert series[1].day == "2024-01-06"


def test_primary_order_is_preserved():
    primary = [sleep_doc("2024-01-07"), sleep_doc("2024-01-05"), sleep_doc("2024-01-06")]

    assert [r.day for r in reconcile(primary, {})] == ["2024-01-07", "2024-01-05", "2024-01-06"]


def test_secondary_fields_are_joined_by_day():
    series = reconcile(
        [sleep_doc("2024-01-05"), sleep_doc("2024-01-06")],
        _secondaries(
            activity=[{"day": "2024-01-05", "steps": 8000, "score": 81, "active_calories": 420, "total_calories": 2500}],
            spo2=[{"day": "2024-01-05", "spo2_percentage": {"average": 96.5}, "breathing_disturbance_index": 3}],
            stress=[{"day": "2024-01-06", "stress_high": 3600, "recovery_high": 1800}],
            vo2=[{"day": "2024-01-05", "vo2_max": 44}],
        ),
    )

    first, second = series
    assert first.steps == 8000
    assert first.activity_score == 81
    assert first.total_calories == 2500
    assert first.spo2_average == 96.5
    assert first.breathing_disturbance_index == 3
    assert first.vo2_max == 44
    assert first.stress_high is None
    assert second.stress_high == 3600
    assert second.recovery_high == 1800
    assert second.steps is None


def test_spo2_without_percentage_is_null():
    series = reconcile(
        [sleep_doc("2024-01-05")],
        _secondaries(spo2=[{"day": "2024-01-05", "spo2_percentage": None, "breathing_disturbance_index": None}]),
    )

    assert series[0].spo2_average is None
    assert series[0].breathing_disturbance_index is None


def test_workouts_are_counted_and_durations_summed():
    workouts = [
        {"day": "2024-01-05", "start_datetime": "2024-01-05T08:00:00+01:00", "end_datetime": "2024-01-05T08:30:00+01:00"},
        {"day": "2024-01-05", "start_datetime": "2024-01-05T18:00:00+01:00", "end_datetime": "2024-01-05T18:45:00+01:00"},
        {"day": "2024-01-05", "start_datetime": "2024-01-05T20:00:00+01:00", "end_datetime": None},
    ]

    record = reconcile([sleep_doc("2024-01-05")], _secondaries(workouts=workouts))[0]

    assert record.workout_count == 3
    assert record.workout_duration == 75 * 60


def test_workouts_without_bounds_leave_duration_null():
    workouts = [{"day": "2024-01-05", "start_datetime": "2024-01-05T08:00:00+01:00"}]

    record = reconcile([sleep_doc("2024-01-05")], _secondaries(workouts=workouts))[0]

    assert record.workout_count == 1
    assert record.workout_duration is None
    assert workout_duration(workouts) == 0


def test_heart_rate_mean_per_day():
    heart_rate = heart_rate_by_day([
        {"timestamp": "2024-01-05T10:00:00+00:00", "bpm": 70},
        {"timestamp": "2024-01-05T10:05:00+00:00", "bpm": 75},
    ])

    series = reconcile([sleep_doc("2024-01-05"), sleep_doc("2024-01-06")], {}, heart_rate=heart_rate)

    assert series[0].hr_daily_average == 73
    assert series[1].hr_daily_average is None


def test_body_composition_lookup():
    body = {"2024-01-05": BodyComposition(weight=72.4, fat_mass=14.1, bone_mass=3.2, muscle_mass=55.0, hydration=None)}

    series = reconcile([sleep_doc("2024-01-05"), sleep_doc("2024-01-06")], {}, body_composition=body)

    assert series[0].weight == 72.4
    assert series[0].muscle_mass == 55.0
    assert series[0].hydration is None
    assert all(getattr(series[1], f) is None for f in ("weight", "fat_mass", "bone_mass", "muscle_mass", "hydration"))


def test_readiness_and_raw_sleep_fields_are_carried():
    doc = sleep_doc(
        "2024-01-05",
        readiness={"score": 77, "temperature_deviation": -0.2, "temperature_trend_deviation": 0.1},
        sleep_algorithm_version="v2",
    )

    record = reconcile([doc], {})[0]

    assert record.readiness_score == 77
    assert record.temperature_deviation == -0.2
    assert record.temperature_trend_deviation == 0.1
    assert record.average_hrv == 42
    assert record.value("sleep_algorithm_version") == "v2"
    assert record.value("not_a_field") is None


def test_dates_are_instants():
    record = reconcile([sleep_doc("2024-01-05")], {})[0]

    assert record.date == datetime(2024, 1, 4, 22, 30, tzinfo=timezone.utc)
    assert record.bedtime_start_date == record.date
    assert record.bedtime_end_date.utcoffset() == timedelta(hours=1)


def test_cutoff_is_injected():
    doc = sleep_doc("2024-01-05", "2024-01-04T13:30:00+00:00", "2024-01-05T07:00:00+00:00")

    assert reconcile([doc], {})[0].bedtime_start_hour == 13.5
    assert reconcile([doc], {}, cutoff_hour=12)[0].bedtime_start_hour == -10.5
