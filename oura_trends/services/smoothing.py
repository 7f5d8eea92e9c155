"""
Aggregation and smoothing of a daily series.

All functions are pure: they take an ordered series (DailyRecord objects or
plain dicts) plus the keys to project on and return a new list of Points.
Records whose y value is None never take part in a reduction.

Percentiles interpolate linearly between the two closest ranks (numpy's
default ``linear`` method, R type 7), so p50 equals the median.
"""

import math
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from oura_trends.schemas import DailyRecord, Point

Reducer = Callable[[np.ndarray], float]

LOESS_MIN_POINTS = 3
LOESS_DET_EPSILON = 1e-10


def _percentile(q: float) -> Reducer:
    return lambda values: float(np.percentile(values, q))


REDUCERS: Dict[str, Reducer] = {
    "mean": lambda values: float(np.mean(values)),
    "sum": lambda values: float(np.sum(values)),
    "median": lambda values: float(np.median(values)),
    "min": lambda values: float(np.min(values)),
    "max": lambda values: float(np.max(values)),
    "deviation": lambda values: float(np.std(values)),
    "variance": lambda values: float(np.var(values)),
    "p01": _percentile(1),
    "p05": _percentile(5),
    "p10": _percentile(10),
    "p50": _percentile(50),
    "p95": _percentile(95),
    "p99": _percentile(99),
}

INTERVALS = ("day", "week", "month", "year")


def _value(record: Any, key: str) -> Any:
    if isinstance(record, DailyRecord):
        return record.value(key)
    if isinstance(record, Mapping):
        return record.get(key)
    return getattr(record, key, None)


def as_number(x: Any) -> float:
    """Numeric position of an x value: POSIX seconds for datetimes, ordinal for dates."""
    if isinstance(x, datetime):
        return x.timestamp()
    if isinstance(x, date):
        return float(x.toordinal())
    return float(x)


def project(series: Iterable[Any], x_key: str, y_key: str) -> List[Tuple[Any, Optional[float]]]:
    """(x, y) pairs in series order, y converted to float or left as None."""
    pairs = []
    for record in series:
        y = _value(record, y_key)
        pairs.append((_value(record, x_key), None if y is None else float(y)))
    return pairs


def get_reducer(name: str) -> Reducer:
    try:
        return REDUCERS[name]
    except KeyError:
        raise ValueError(f"Unknown reducer '{name}'. Use one of: {', '.join(REDUCERS)}")


def reduce_values(values: Sequence[Optional[float]], reducer: str) -> Optional[float]:
    """Apply a named reducer to the non-null values; None when there are none."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return get_reducer(reducer)(np.asarray(present, dtype=np.float64))


def rolling_window(
    series: Sequence[Any],
    k: int,
    reduce: str = "mean",
    x_key: str = "date",
    y_key: str = "average_hrv",
) -> List[Point]:
    """
    Right-anchored rolling reduction.

    The window at position i holds the k records ending at i (fewer at the
    start of the series). None values inside the window are ignored; a window
    with nothing left reduces to None.
    """
    if k < 1:
        raise ValueError(f"Window size must be at least 1, got {k}")
    get_reducer(reduce)

    pairs = project(series, x_key, y_key)
    ys = [y for _, y in pairs]
    return [
        Point(x=x, y=reduce_values(ys[max(0, i - k + 1):i + 1], reduce))
        for i, (x, _) in enumerate(pairs)
    ]


def loess_smooth(
    series: Sequence[Any],
    x_key: str = "date",
    y_key: str = "average_hrv",
    span: float = 0.3,
) -> List[Point]:
    """
    LOESS: local linear regression with a tricube kernel.

    For each valid point the k = round(span * n) nearest neighbours (at least
    3) are weighted by (1 - u^3)^3 where u is the distance scaled by the
    farthest neighbour's distance times 1.0001, and a weighted least-squares
    line is evaluated at the point's own x. When the neighbours have no x
    spread the weighted mean of y is used instead.

    Points with y None are dropped first. With fewer than 3 valid points the
    filtered points are returned unsmoothed.
    """
    if not 0 < span <= 1:
        raise ValueError(f"LOESS span must be in (0, 1], got {span}")

    valid = [(x, y) for x, y in project(series, x_key, y_key) if y is not None]
    if len(valid) < LOESS_MIN_POINTS:
        return [Point(x=x, y=y) for x, y in valid]

    xs = np.array([as_number(x) for x, _ in valid], dtype=np.float64)
    ys = np.array([y for _, y in valid], dtype=np.float64)
    n = len(valid)
    k = max(math.floor(span * n + 0.5), LOESS_MIN_POINTS)

    smoothed = []
    for i in range(n):
        xi = xs[i]
        distances = np.abs(xs - xi)
        neighbours = np.argsort(distances, kind="stable")[:k]
        max_dist = distances[neighbours[-1]] or 1.0

        u = distances[neighbours] / (max_dist * 1.0001)
        w = (1 - u ** 3) ** 3
        dx = xs[neighbours] - xi
        y = ys[neighbours]

        sw = w.sum()
        swx = (w * dx).sum()
        swy = (w * y).sum()
        swxx = (w * dx * dx).sum()
        swxy = (w * dx * y).sum()

        det = sw * swxx - swx * swx
        if abs(det) < LOESS_DET_EPSILON:
            y_hat = swy / sw
        else:
            y_hat = (swxx * swy - swx * swxy) / det
        smoothed.append(Point(x=valid[i][0], y=float(y_hat)))

    return smoothed


def aggregate(
    series: Sequence[Any],
    agg: str = "mean",
    k: int = 7,
    x_key: str = "date",
    y_key: str = "average_hrv",
    loess_span: float = 30,
) -> List[Point]:
    """
    Trend line for one metric: LOESS when ``agg`` is "loess" (``loess_span``
    given in percent), a rolling ``k``-record window otherwise.
    """
    if agg == "loess":
        return loess_smooth(series, x_key, y_key, loess_span / 100)
    return rolling_window(series, k, agg, x_key, y_key)


def interval_start(x: Any, interval: str) -> date:
    """First calendar day of the interval containing ``x``. Weeks start on Sunday."""
    day = x.date() if isinstance(x, datetime) else x
    if isinstance(day, str):
        day = date.fromisoformat(day[:10])
    if interval == "day":
        return day
    if interval == "week":
        return day - timedelta(days=(day.weekday() + 1) % 7)
    if interval == "month":
        return day.replace(day=1)
    if interval == "year":
        return day.replace(month=1, day=1)
    raise ValueError(f"Unknown interval '{interval}'. Use one of: {', '.join(INTERVALS)}")


def group_by_interval(
    series: Sequence[Any],
    interval: str = "month",
    reduce: str = "mean",
    x_key: str = "date",
    y_key: str = "average_hrv",
) -> List[Point]:
    """
    One reduced value per day/week/month/year bucket, buckets in order of
    first appearance. "loess" is not a bucket reducer and falls back to mean.
    """
    if reduce == "loess":
        reduce = "mean"
    get_reducer(reduce)

    buckets: Dict[date, List[Optional[float]]] = {}
    for x, y in project(series, x_key, y_key):
        if x is None:
            continue
        buckets.setdefault(interval_start(x, interval), []).append(y)

    return [Point(x=start, y=reduce_values(values, reduce)) for start, values in buckets.items()]


def linear_trend(
    series: Sequence[Any],
    x_key: str = "date",
    y_key: str = "average_hrv",
) -> List[Point]:
    """Ordinary least-squares line through the valid points, evaluated at each of them."""
    valid = [(x, y) for x, y in project(series, x_key, y_key) if y is not None and x is not None]
    if len(valid) < 2:
        return []

    xs = np.array([as_number(x) for x, _ in valid], dtype=np.float64)
    ys = np.array([y for _, y in valid], dtype=np.float64)
    x_mean = xs.mean()
    sxx = ((xs - x_mean) ** 2).sum()
    if sxx == 0:
        return [Point(x=x, y=float(ys.mean())) for x, _ in valid]

    slope = ((xs - x_mean) * (ys - ys.mean())).sum() / sxx
    intercept = ys.mean() - slope * x_mean
    return [Point(x=x, y=float(intercept + slope * xn)) for (x, _), xn in zip(valid, xs)]


def algorithm_changes(series: Sequence[Any], x_key: str = "date") -> List[Dict[str, Any]]:
    """Positions where ``sleep_algorithm_version`` differs from the previous record's."""
    changes = []
    for prev, curr in zip(series, series[1:]):
        before = _value(prev, "sleep_algorithm_version")
        after = _value(curr, "sleep_algorithm_version")
        if before and after and before != after:
            changes.append({"date": _value(curr, x_key), "version": after})
    return changes
