from typing import Any, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio

from oura_trends.clients.oura_client import OuraClient

BASE_URL = "https://api.oura.test/v2"


class FakeOuraAPI:
    """
    In-process stand-in for the Oura API.

    ``pages`` maps a collection name to the list of pages it serves, followed
    in order through next_token. ``errors`` maps a collection name to the HTTP
    status it fails with.
    """

    def __init__(
        self,
        pages: Optional[Dict[str, List[List[Dict[str, Any]]]]] = None,
        errors: Optional[Dict[str, int]] = None,
    ) -> None:
        self.pages = pages or {}
        self.errors = errors or {}
        self.requests: List[httpx.Request] = []

    def requests_for(self, collection: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(f"/{collection}")]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        collection = request.url.path.rsplit("/", 1)[-1]

        if collection in self.errors:
            return httpx.Response(self.errors[collection])
        if collection == "personal_info":
            return httpx.Response(200, json={"id": "u1", "email": "sleeper@example.com"})

        pages = self.pages.get(collection, [[]])
        token = request.url.params.get("next_token")
        index = int(token[len("page"):]) if token else 0
        next_token = f"page{index + 1}" if index + 1 < len(pages) else None
        return httpx.Response(200, json={"data": pages[index], "next_token": next_token})


@pytest.fixture
def fake_api() -> FakeOuraAPI:
    return FakeOuraAPI()


@pytest_asyncio.fixture
async def make_client():
    """Factory building OuraClients that talk to a FakeOuraAPI."""
    http_clients: List[httpx.AsyncClient] = []

    def _make(api: FakeOuraAPI, **kwargs: Any) -> OuraClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(api))
        http_clients.append(http)
        return OuraClient("test-token", base_url=BASE_URL, http_client=http, **kwargs)

    yield _make

    for http in http_clients:
        await http.aclose()


def sleep_doc(
    day: str,
    bedtime_start: str = "2024-01-04T23:30:00+01:00",
    bedtime_end: str = "2024-01-05T07:15:00+01:00",
    type: str = "long_sleep",
    **fields: Any,
) -> Dict[str, Any]:
    doc = {
        "id": f"sleep-{day}-{type}",
        "day": day,
        "type": type,
        "bedtime_start": bedtime_start,
        "bedtime_end": bedtime_end,
        "average_hrv": 42,
        "average_heart_rate": 55.5,
    }
    doc.update(fields)
    return doc
