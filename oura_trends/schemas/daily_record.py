from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class BodyComposition(BaseModel):
    """
    Body-composition values for one calendar day, in kilograms.
    """
    model_config = ConfigDict(frozen=True)

    weight: Optional[float] = None
    fat_mass: Optional[float] = None
    bone_mass: Optional[float] = None
    muscle_mass: Optional[float] = None
    hydration: Optional[float] = None


class DailyRecord(BaseModel):
    """
    One reconciled night: the Oura sleep document plus every derived and
    secondary field. Secondary fields are always present and None when the
    source had nothing for the day; the raw sleep fields are kept as extras.
    """
    model_config = ConfigDict(frozen=True, extra="allow")

    day: Optional[str] = Field(None, description="Calendar day (YYYY-MM-DD) the sleep is attributed to.")
    type: Optional[str] = None

    date: datetime
    bedtime_start_date: datetime
    bedtime_end_date: datetime
    bedtime_start_hour: float
    bedtime_end_hour: float

    # Readiness (embedded in the sleep document)
    readiness_score: Optional[float] = None
    temperature_deviation: Optional[float] = None
    temperature_trend_deviation: Optional[float] = None

    # Activity
    steps: Optional[int] = None
    active_calories: Optional[float] = None
    total_calories: Optional[float] = None
    activity_score: Optional[float] = None
    equivalent_walking_distance: Optional[float] = None
    high_activity_time: Optional[float] = None
    medium_activity_time: Optional[float] = None
    low_activity_time: Optional[float] = None
    sedentary_time: Optional[float] = None
    resting_time: Optional[float] = None

    # SpO2
    spo2_average: Optional[float] = None
    breathing_disturbance_index: Optional[float] = None

    # Stress
    stress_high: Optional[float] = None
    recovery_high: Optional[float] = None

    # VO2 max
    vo2_max: Optional[float] = None

    # Heart rate (all-day)
    hr_daily_average: Optional[int] = None

    # Workouts
    workout_count: Optional[int] = None
    workout_duration: Optional[float] = None

    # Body
    weight: Optional[float] = None
    fat_mass: Optional[float] = None
    bone_mass: Optional[float] = None
    muscle_mass: Optional[float] = None
    hydration: Optional[float] = None

    def value(self, key: str) -> Any:
        """Field lookup that treats unknown keys as missing values."""
        return getattr(self, key, None)


class Point(BaseModel):
    x: Any
    y: Optional[float] = None
