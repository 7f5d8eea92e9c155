"""
Series Routes
=============
Reconciled daily series and its aggregations, as JSON for chart front-ends.

Every request refetches from Oura; nothing is stored between requests.
"""

from datetime import date, timedelta
from typing import AsyncIterator, Optional, Tuple

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from oura_trends.catalog import (
    AGGREGATIONS,
    list_metrics,
    validate_aggregation,
    validate_metric,
)
from oura_trends.clients.body_composition import BodyCompositionSource, EmptyBodyComposition
from oura_trends.clients.oura_client import OuraClient
from oura_trends.clients.withings_client import WithingsBodyComposition
from oura_trends.config import get_settings
from oura_trends.services.clock import shifted_domain
from oura_trends.services.pipeline import DailySeries, fetch_daily_series
from oura_trends.services.smoothing import (
    INTERVALS,
    aggregate,
    algorithm_changes,
    group_by_interval,
    linear_trend,
)
from oura_trends.utils.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["series"])


# -------------------------------------------------------------------------
# Dependencies
# -------------------------------------------------------------------------
async def get_oura_client(authorization: Optional[str] = Header(None)) -> AsyncIterator[OuraClient]:
    """Client authenticated with the caller's bearer token, or OURA_ACCESS_TOKEN."""
    settings = get_settings()
    token = settings.OURA_ACCESS_TOKEN
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Oura access token not configured")

    async with OuraClient(
        token,
        base_url=settings.OURA_API_BASE,
        timeout=settings.REQUEST_TIMEOUT,
        max_pages=settings.OURA_MAX_PAGES,
    ) as client:
        yield client


def get_body_composition_source() -> BodyCompositionSource:
    settings = get_settings()
    if settings.WITHINGS_ACCESS_TOKEN:
        return WithingsBodyComposition(settings.WITHINGS_ACCESS_TOKEN, base_url=settings.WITHINGS_API_BASE)
    return EmptyBodyComposition()


def date_range(
    start: Optional[date] = Query(None, description="First day (YYYY-MM-DD), defaults to DEFAULT_LOOKBACK_DAYS ago"),
    end: Optional[date] = Query(None, description="Last day (YYYY-MM-DD), defaults to tomorrow"),
) -> Tuple[date, date]:
    settings = get_settings()
    today = date.today()
    start = start or today - timedelta(days=settings.DEFAULT_LOOKBACK_DAYS)
    end = end or today + timedelta(days=1)
    if start > end:
        raise HTTPException(status_code=400, detail=f"start ({start}) is after end ({end})")
    return start, end


async def load_series(
    heartrate: bool,
    dates: Tuple[date, date],
    client: OuraClient,
    body_source: BodyCompositionSource,
) -> DailySeries:
    settings = get_settings()
    start, end = dates
    return await fetch_daily_series(
        client,
        start,
        end,
        include_heart_rate=heartrate,
        body_composition=body_source,
        cutoff_hour=settings.DAY_CUTOFF_HOUR,
        heartrate_span_days=settings.HEARTRATE_MAX_SPAN_DAYS,
    )


def _checked(check, value: str) -> str:
    try:
        return check(value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# -------------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------------
@router.get("/metrics")
async def metrics(heartrate: bool = Query(False, description="Include the all-day heart rate metric")):
    """Metric catalogue, aggregation names and the shifted-hour axis range."""
    settings = get_settings()
    low, high = shifted_domain(settings.DAY_CUTOFF_HOUR)
    return {
        "metrics": list_metrics(include_heart_rate=heartrate),
        "aggregations": AGGREGATIONS,
        "intervals": list(INTERVALS),
        "day_cutoff_hour": settings.DAY_CUTOFF_HOUR,
        "shifted_hour_domain": [low, high],
    }


@router.get("/status")
async def status(client: OuraClient = Depends(get_oura_client)):
    """Check the Oura credential by reading the personal info document."""
    info = await client.personal_info()
    return {"connected": True, "email": info.get("email"), "id": info.get("id")}


@router.get("/series")
async def series(
    heartrate: bool = Query(False, description="Also fetch all-day heart rate (slow)"),
    dates: Tuple[date, date] = Depends(date_range),
    client: OuraClient = Depends(get_oura_client),
    body_source: BodyCompositionSource = Depends(get_body_composition_source),
):
    """Every reconciled night in the range."""
    result = await load_series(heartrate, dates, client, body_source)
    return {
        "start_date": result.start_date,
        "end_date": result.end_date,
        "count": len(result),
        "heart_rate_included": result.heart_rate_included,
        "warnings": result.warnings,
        "algorithm_changes": algorithm_changes(result.records),
        "records": result.records,
    }


@router.get("/series/{metric}")
async def metric_trend(
    metric: str,
    agg: str = Query("mean", description="Reducer name or 'loess'"),
    k: int = Query(7, ge=1, le=365, description="Rolling window size in nights"),
    loess_span: float = Query(30, gt=0, le=100, description="LOESS span in percent of the series"),
    heartrate: bool = Query(False),
    dates: Tuple[date, date] = Depends(date_range),
    client: OuraClient = Depends(get_oura_client),
    body_source: BodyCompositionSource = Depends(get_body_composition_source),
):
    """Raw points, the aggregated line and the linear trend for one metric."""
    _checked(validate_metric, metric)
    _checked(validate_aggregation, agg)

    result = await load_series(heartrate, dates, client, body_source)
    raw = [{"x": r.date, "y": r.value(metric)} for r in result.records]
    return {
        "metric": metric,
        "agg": agg,
        "k": k,
        "loess_span": loess_span,
        "warnings": result.warnings,
        "points": raw,
        "line": aggregate(result.records, agg, k, "date", metric, loess_span),
        "trend": linear_trend(result.records, "date", metric),
    }


@router.get("/series/{metric}/grouped")
async def metric_grouped(
    metric: str,
    interval: str = Query("month", description="day, week, month or year"),
    agg: str = Query("mean"),
    heartrate: bool = Query(False),
    dates: Tuple[date, date] = Depends(date_range),
    client: OuraClient = Depends(get_oura_client),
    body_source: BodyCompositionSource = Depends(get_body_composition_source),
):
    """One reduced value per calendar interval, for bar charts."""
    _checked(validate_metric, metric)
    _checked(validate_aggregation, agg)
    if interval not in INTERVALS:
        raise HTTPException(status_code=400, detail=f"Unknown interval '{interval}'")

    result = await load_series(heartrate, dates, client, body_source)
    return {
        "metric": metric,
        "interval": interval,
        "agg": agg,
        "warnings": result.warnings,
        "bars": group_by_interval(result.records, interval, agg, "date", metric),
    }
