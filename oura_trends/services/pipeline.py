"""
Query pipeline: fetch every collection concurrently, index, reconcile.

``fetch_daily_series`` is the single entry point; callers invoke it again
whenever the date range or options change.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any, Awaitable, Dict, List, Optional

from oura_trends.clients.body_composition import BodyCompositionSource, EmptyBodyComposition
from oura_trends.clients.oura_client import OuraClient
from oura_trends.config import DAY_CUTOFF_HOUR
from oura_trends.schemas import BodyComposition, DailyRecord
from oura_trends.services.indexer import Cardinality, heart_rate_by_day, index_by_day
from oura_trends.services.reconciler import reconcile
from oura_trends.utils.logging_config import get_logger, log_with_context

logger = get_logger(__name__)


@dataclass
class DailySeries:
    """Result of one query."""
    start_date: date
    end_date: date
    records: List[DailyRecord] = field(default_factory=list)
    heart_rate_included: bool = False
    warnings: List[str] = field(default_factory=list)  # optional sources that failed

    def __len__(self) -> int:
        return len(self.records)


async def _optional_heart_rate(
    client: OuraClient,
    start: datetime,
    end: datetime,
    max_span_days: int,
    warnings: List[str],
) -> List[Dict[str, Any]]:
    try:
        return await client.heartrate(start, end, max_span_days)
    except Exception as e:
        logger.warning(f"Heart rate unavailable, continuing without it: {e}")
        warnings.append(f"Failed to fetch heart rate: {e}")
        return []


async def _optional_body_composition(
    source: BodyCompositionSource,
    start_date: date,
    end_date: date,
    warnings: List[str],
) -> Dict[str, BodyComposition]:
    try:
        return await source(start_date, end_date)
    except Exception as e:
        logger.warning(f"Body composition unavailable, continuing without it: {e}")
        warnings.append(f"Failed to fetch body composition: {e}")
        return {}


async def _no_samples() -> List[Dict[str, Any]]:
    return []


async def _gather(*aws: Awaitable[Any]) -> List[Any]:
    """asyncio.gather that cancels the remaining fetches once one fails."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        raise


async def fetch_daily_series(
    client: OuraClient,
    start_date: date,
    end_date: date,
    include_heart_rate: bool = False,
    body_composition: Optional[BodyCompositionSource] = None,
    cutoff_hour: int = DAY_CUTOFF_HOUR,
    heartrate_span_days: int = 30,
) -> DailySeries:
    """
    Fetch, index and reconcile every collection for ``[start_date, end_date]``.

    Sleep, activity, SpO2, stress, VO2 max and workouts are required: the
    first of them to fail aborts the query with its OuraAPIError. Heart rate
    (only fetched when ``include_heart_rate``) and body composition are
    optional: any failure, including a malformed response, leaves their fields
    None and adds a warning.
    """
    warnings: List[str] = []
    body_composition = body_composition or EmptyBodyComposition()

    if include_heart_rate:
        hr_start = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
        hr_end = datetime.combine(end_date, time.min, tzinfo=timezone.utc)
        heart_rate_fetch = _optional_heart_rate(client, hr_start, hr_end, heartrate_span_days, warnings)
    else:
        heart_rate_fetch = _no_samples()

    (sleep, activity, spo2, stress, vo2, workouts, heart_rate, body) = await _gather(
        client.sleep(start_date, end_date),
        client.daily_activity(start_date, end_date),
        client.daily_spo2(start_date, end_date),
        client.daily_stress(start_date, end_date),
        client.vo2_max(start_date, end_date),
        client.workouts(start_date, end_date),
        heart_rate_fetch,
        _optional_body_composition(body_composition, start_date, end_date, warnings),
    )

    log_with_context(
        logger, "info", "Collections fetched",
        sleep=len(sleep), activity=len(activity), spo2=len(spo2), stress=len(stress),
        vo2=len(vo2), workouts=len(workouts), heartrate=len(heart_rate), body_days=len(body),
    )

    records = reconcile(
        sleep,
        {
            "activity": index_by_day(activity, Cardinality.ONE),
            "spo2": index_by_day(spo2, Cardinality.ONE),
            "stress": index_by_day(stress, Cardinality.ONE),
            "vo2": index_by_day(vo2, Cardinality.ONE),
            "workouts": index_by_day(workouts, Cardinality.MANY),
        },
        heart_rate=heart_rate_by_day(heart_rate),
        body_composition=body,
        cutoff_hour=cutoff_hour,
    )

    return DailySeries(
        start_date=start_date,
        end_date=end_date,
        records=records,
        heart_rate_included=include_heart_rate,
        warnings=warnings,
    )
