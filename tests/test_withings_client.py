from datetime import date

import httpx
import pytest

from oura_trends.clients.withings_client import (
    WithingsAPIError,
    WithingsBodyComposition,
    body_composition_by_day,
)

JAN_5_0800_UTC = 1704441600
JAN_5_2330_UTC = 1704497400


def group(timestamp, *measures, timezone=None):
    grp = {"date": timestamp, "measures": [{"type": t, "value": v, "unit": u} for t, v, u in measures]}
    if timezone:
        grp["timezone"] = timezone
    return grp


def test_measure_groups_collapse_per_day():
    by_day = body_composition_by_day([
        group(JAN_5_0800_UTC, (1, 72350, -3), (8, 13900, -3), (77, 412, -1)),
        group(JAN_5_0800_UTC + 60, (1, 99000, -3)),
        group(JAN_5_2330_UTC, (1, 72100, -3), (12, 36, 0)),
    ])

    assert list(by_day) == ["2024-01-05"]
    assert by_day["2024-01-05"].weight == 72.35
    assert by_day["2024-01-05"].fat_mass == 13.9
    assert by_day["2024-01-05"].hydration == 41.2
    assert by_day["2024-01-05"].bone_mass is None


def test_local_day_follows_group_timezone():
    by_day = body_composition_by_day([
        group(JAN_5_2330_UTC, (1, 72100, -3), timezone="Europe/Paris"),
    ])

    assert list(by_day) == ["2024-01-06"]


def test_groups_without_body_measures_are_ignored():
    assert body_composition_by_day([group(JAN_5_0800_UTC, (9, 80, 0), (10, 120, 0))]) == {}


@pytest.mark.asyncio
async def test_fetch_follows_offset_pagination():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if "offset" not in request.url.params:
            return httpx.Response(200, json={"status": 0, "body": {
                "measuregrps": [group(JAN_5_0800_UTC, (1, 72350, -3))],
                "timezone": "UTC",
                "more": 1,
                "offset": 1,
            }})
        return httpx.Response(200, json={"status": 0, "body": {
            "measuregrps": [group(JAN_5_0800_UTC + 86400, (1, 72000, -3))],
            "more": 0,
        }})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        source = WithingsBodyComposition("w-token", base_url="https://wbs.test", http_client=http)
        by_day = await source(date(2024, 1, 1), date(2024, 1, 31))

    assert by_day["2024-01-05"].weight == 72.35
    assert by_day["2024-01-06"].weight == 72.0
    assert len(requests) == 2
    first, second = requests
    assert first.headers["Authorization"] == "Bearer w-token"
    assert first.url.params["action"] == "getmeas"
    assert first.url.params["meastypes"] == "1,8,88,76,77"
    assert first.url.params["startdate"] == "1704067200"
    assert first.url.params["enddate"] == str(1704067200 + 31 * 86400)
    assert second.url.params["offset"] == "1"


@pytest.mark.asyncio
async def test_non_zero_status_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": 401, "error": "invalid_token"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        source = WithingsBodyComposition("expired", http_client=http)
        with pytest.raises(WithingsAPIError, match="401"):
            await source(date(2024, 1, 1), date(2024, 1, 2))


@pytest.mark.asyncio
async def test_http_failure_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        source = WithingsBodyComposition("token", http_client=http)
        with pytest.raises(httpx.HTTPStatusError):
            await source(date(2024, 1, 1), date(2024, 1, 2))
