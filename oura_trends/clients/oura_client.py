from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote, urlencode

import httpx

from oura_trends.utils.logging_config import get_logger

logger = get_logger(__name__)

OURA_API_BASE = "https://api.ouraring.com/v2"

DateLike = Union[str, date]


class OuraAPIError(RuntimeError):
    """
    Raised when an Oura request fails. Carries the HTTP status code and
    status text so callers can tell an invalid credential (401) apart from
    other failures.
    """

    def __init__(self, status_code: Optional[int], reason: str) -> None:
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"Error {status_code}: {reason}")

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401


class OuraPaginationError(OuraAPIError):
    """Raised when a collection keeps returning next_token past the page ceiling."""

    def __init__(self, path: str, max_pages: int) -> None:
        super().__init__(None, f"{path} still paginating after {max_pages} pages")
        self.path = path
        self.max_pages = max_pages


class OuraClient:
    """
    Async client for the Oura v2 user collections.

    Every collection goes through ``fetch_all``, which follows ``next_token``
    until the server stops returning one. Heart rate additionally goes through
    ``fetch_chunked`` because that endpoint rejects ranges longer than 30 days.

    The client owns an ``httpx.AsyncClient`` unless one is passed in; use it as
    an async context manager or call ``aclose``.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = OURA_API_BASE,
        timeout: Optional[float] = None,
        max_pages: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.max_pages = max_pages
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> "OuraClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------
    async def _get(self, path: str) -> Dict[str, Any]:
        """
        GET helper that injects the bearer token and raises OuraAPIError on any
        non-success status or a body that is not JSON.
        """
        response = await self._client.get(
            f"{self.base_url}/{path}",
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Cache-Control": "no-cache",
            },
        )
        if not response.is_success:
            logger.warning(f"Oura request failed: {response.status_code} {response.reason_phrase} for {path.split('?')[0]}")
            raise OuraAPIError(response.status_code, response.reason_phrase)
        try:
            return response.json()
        except ValueError:
            logger.warning(f"Oura response for {path.split('?')[0]} is not JSON")
            raise OuraAPIError(response.status_code, "invalid JSON body")

    @staticmethod
    def with_cursor(path: str, next_token: str) -> str:
        """Append the pagination cursor to a path, keeping its original query."""
        separator = "&" if "?" in path else "?"
        return f"{path}{separator}next_token={quote(next_token, safe='')}"

    async def fetch_all(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Fetch every page of a collection and return the concatenated ``data``.

        The first request uses ``path`` with ``params``; each following request
        reissues that same request with ``next_token`` appended. A failing page
        aborts the whole fetch and discards the pages already read.
        """
        if params:
            path = f"{path}?{urlencode(params)}"

        records: List[Dict[str, Any]] = []
        url = path
        pages = 0
        while True:
            if self.max_pages is not None and pages >= self.max_pages:
                raise OuraPaginationError(path.split("?")[0], self.max_pages)
            body = await self._get(url)
            pages += 1
            records.extend(body.get("data") or [])
            next_token = body.get("next_token")
            if not next_token:
                break
            url = self.with_cursor(path, next_token)

        logger.debug(f"Fetched {len(records)} records from {path.split('?')[0]} in {pages} page(s)")
        return records

    async def fetch_chunked(
        self,
        path: str,
        start: datetime,
        end: datetime,
        max_span_days: int,
        start_param: str = "start_datetime",
        end_param: str = "end_datetime",
    ) -> List[Dict[str, Any]]:
        """
        Split ``[start, end)`` into consecutive windows of at most
        ``max_span_days`` and fetch them one after another. Any failing window
        aborts the whole range.
        """
        span = timedelta(days=max_span_days)
        records: List[Dict[str, Any]] = []
        chunk_start = start
        while chunk_start < end:
            chunk_end = min(chunk_start + span, end)
            records.extend(await self.fetch_all(path, {
                start_param: chunk_start.isoformat(),
                end_param: chunk_end.isoformat(),
            }))
            chunk_start = chunk_end
        return records

    # -------------------------------------------------------------------------
    # Collections
    # -------------------------------------------------------------------------
    async def _daily(self, collection: str, start_date: DateLike, end_date: DateLike) -> List[Dict[str, Any]]:
        return await self.fetch_all(
            f"usercollection/{collection}",
            {"start_date": str(start_date), "end_date": str(end_date)},
        )

    async def personal_info(self) -> Dict[str, Any]:
        return await self._get("usercollection/personal_info")

    async def sleep(self, start_date: DateLike, end_date: DateLike) -> List[Dict[str, Any]]:
        return await self._daily("sleep", start_date, end_date)

    async def daily_activity(self, start_date: DateLike, end_date: DateLike) -> List[Dict[str, Any]]:
        return await self._daily("daily_activity", start_date, end_date)

    async def daily_spo2(self, start_date: DateLike, end_date: DateLike) -> List[Dict[str, Any]]:
        return await self._daily("daily_spo2", start_date, end_date)

    async def daily_stress(self, start_date: DateLike, end_date: DateLike) -> List[Dict[str, Any]]:
        return await self._daily("daily_stress", start_date, end_date)

    async def vo2_max(self, start_date: DateLike, end_date: DateLike) -> List[Dict[str, Any]]:
        return await self._daily("vO2_max", start_date, end_date)

    async def workouts(self, start_date: DateLike, end_date: DateLike) -> List[Dict[str, Any]]:
        return await self._daily("workout", start_date, end_date)

    async def heartrate(self, start: datetime, end: datetime, max_span_days: int = 30) -> List[Dict[str, Any]]:
        """Heart-rate samples in ``[start, end)``; the API caps each request at 30 days."""
        return await self.fetch_chunked("usercollection/heartrate", start, end, max_span_days)
