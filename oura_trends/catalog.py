"""
Plottable daily metrics and the aggregations that can be applied to them.
"""

from typing import Dict, List

from oura_trends.services.smoothing import REDUCERS

# section -> [(name, label, unit)]
METRIC_SECTIONS = {
    "Sleep": [
        ("average_breath", "Average breath", "breaths/min"),
        ("average_heart_rate", "Average heart rate (sleep)", "bpm"),
        ("hr_daily_average", "Average heart rate (all-day)", "bpm"),
        ("average_hrv", "Average HRV", "ms"),
        ("awake_time", "Awake time", "s"),
        ("bedtime_end_hour", "Bedtime end", "h"),
        ("bedtime_start_hour", "Bedtime start", "h"),
        ("deep_sleep_duration", "Deep sleep", "s"),
        ("efficiency", "Efficiency", "%"),
        ("latency", "Latency", "s"),
        ("light_sleep_duration", "Light sleep", "s"),
        ("lowest_heart_rate", "Lowest heart rate", "bpm"),
        ("readiness_score", "Readiness score", "%"),
        ("temperature_deviation", "Temperature deviation", "°C"),
        ("temperature_trend_deviation", "Temperature trend deviation", "°C"),
        ("rem_sleep_duration", "REM sleep", "s"),
        ("restless_periods", "Restlessness periods", "periods"),
        ("time_in_bed", "Time in bed", "s"),
        ("total_sleep_duration", "Total sleep", "s"),
    ],
    "Activity": [
        ("steps", "Steps", "steps"),
        ("active_calories", "Active calories", "kcal"),
        ("total_calories", "Total calories", "kcal"),
        ("activity_score", "Activity score", "%"),
        ("equivalent_walking_distance", "Walking distance", "m"),
        ("high_activity_time", "High activity", "s"),
        ("medium_activity_time", "Medium activity", "s"),
        ("low_activity_time", "Low activity", "s"),
        ("sedentary_time", "Sedentary time", "s"),
        ("resting_time", "Resting time", "s"),
    ],
    "Health": [
        ("spo2_average", "SpO2 average", "%"),
        ("breathing_disturbance_index", "Breathing disturbance", ""),
        ("stress_high", "Stress (high)", "s"),
        ("recovery_high", "Recovery (high)", "s"),
        ("vo2_max", "VO2 Max", "mL/kg/min"),
    ],
    "Workouts": [
        ("workout_count", "Workout count", ""),
        ("workout_duration", "Workout duration", "s"),
    ],
    "Body": [
        ("weight", "Weight", "kg"),
        ("fat_mass", "Fat mass", "kg"),
        ("bone_mass", "Bone mass", "kg"),
        ("muscle_mass", "Muscle mass", "kg"),
        ("hydration", "Hydration", "kg"),
    ],
}

SHIFTED_METRICS = {"bedtime_start_hour", "bedtime_end_hour"}
HEART_RATE_METRICS = {"hr_daily_average"}

AGGREGATIONS = list(REDUCERS) + ["loess"]

METRICS: Dict[str, Dict[str, object]] = {
    name: {
        "name": name,
        "label": label,
        "unit": unit,
        "section": section,
        "shifted": name in SHIFTED_METRICS,
    }
    for section, entries in METRIC_SECTIONS.items()
    for name, label, unit in entries
}


def list_metrics(include_heart_rate: bool = False) -> List[Dict[str, object]]:
    """Metric descriptions; the all-day heart rate only when it was fetched."""
    return [
        m for m in METRICS.values()
        if include_heart_rate or m["name"] not in HEART_RATE_METRICS
    ]


def validate_metric(name: str) -> str:
    if name not in METRICS:
        raise ValueError(f"Unknown metric '{name}'")
    return name


def validate_aggregation(name: str) -> str:
    if name not in AGGREGATIONS:
        raise ValueError(f"Unknown aggregation '{name}'. Use one of: {', '.join(AGGREGATIONS)}")
    return name


def validate_window(k: int, loess_span: float) -> None:
    """Rolling window size in records and LOESS span in percent."""
    if k < 1:
        raise ValueError(f"Window size must be at least 1, got {k}")
    if not 0 < loess_span <= 100:
        raise ValueError(f"LOESS span must be in (0, 100] percent, got {loess_span}")
