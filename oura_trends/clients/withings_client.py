from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx

from oura_trends.schemas import BodyComposition
from oura_trends.utils.logging_config import get_logger

logger = get_logger(__name__)

WITHINGS_API_BASE = "https://wbsapi.withings.net"

# Withings measure type -> BodyComposition field
BODY_MEASURE_TYPES = {
    1: "weight",
    8: "fat_mass",
    88: "bone_mass",
    76: "muscle_mass",
    77: "hydration",
}


class WithingsAPIError(RuntimeError):
    """Raised when the Withings API responds with a non-zero status."""


def _measure_value(measure: Dict[str, Any]) -> float:
    """Withings encodes values as value * 10^unit."""
    return round(measure["value"] * (10 ** measure["unit"]), 2)


def _group_day(grp: Dict[str, Any], default_tz: str) -> str:
    tz_name = grp.get("timezone") or default_tz
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        tz = timezone.utc
    return datetime.fromtimestamp(grp["date"], tz=tz).strftime("%Y-%m-%d")


def body_composition_by_day(measuregrps: List[Dict[str, Any]], default_tz: str = "UTC") -> Dict[str, BodyComposition]:
    """
    Collapse measure groups into one BodyComposition per local day.
    The first group seen for a day wins, same as the CSV exports.
    """
    by_day: Dict[str, BodyComposition] = {}
    for grp in measuregrps:
        values = {
            BODY_MEASURE_TYPES[m["type"]]: _measure_value(m)
            for m in grp.get("measures", [])
            if m.get("type") in BODY_MEASURE_TYPES
        }
        if not values:
            continue
        day = _group_day(grp, default_tz)
        if day in by_day:
            continue
        by_day[day] = BodyComposition(**values)
    return by_day


class WithingsBodyComposition:
    """
    Body-composition source backed by the Withings measure API (getmeas).
    Requires an OAuth access token with scope user.metrics.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = WITHINGS_API_BASE,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http_client = http_client

    async def _get_measures(self, client: httpx.AsyncClient, params: Dict[str, Any]) -> Dict[str, Any]:
        response = await client.get(
            f"{self.base_url}/measure",
            params=params,
            headers={"Authorization": f"Bearer {self.access_token}"},
        )
        response.raise_for_status()
        body = response.json()
        if body.get("status") != 0:
            raise WithingsAPIError(
                f"Withings API error {body.get('status')}: {body.get('error')}"
            )
        return body.get("body", {})

    async def fetch_measure_groups(self, start_date: date, end_date: date) -> Dict[str, Any]:
        """Every body-composition measure group between the two days, both inclusive."""
        start = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
        end = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
        params: Dict[str, Any] = {
            "action": "getmeas",
            "meastypes": ",".join(str(t) for t in BODY_MEASURE_TYPES),
            "category": 1,
            "startdate": int(start.timestamp()),
            "enddate": int(end.timestamp()),
        }

        groups: List[Dict[str, Any]] = []
        tz_name = "UTC"
        client = self._http_client or httpx.AsyncClient(timeout=self.timeout)
        try:
            while True:
                body = await self._get_measures(client, params)
                groups.extend(body.get("measuregrps", []))
                tz_name = body.get("timezone") or tz_name
                if not body.get("more"):
                    break
                params["offset"] = body.get("offset", 0)
        finally:
            if self._http_client is None:
                await client.aclose()

        return {"measuregrps": groups, "timezone": tz_name}

    async def __call__(self, start_date: date, end_date: date) -> Dict[str, BodyComposition]:
        body = await self.fetch_measure_groups(start_date, end_date)
        by_day = body_composition_by_day(body["measuregrps"], body["timezone"])
        logger.info(f"Withings body composition: {len(by_day)} day(s) from {len(body['measuregrps'])} group(s)")
        return by_day
