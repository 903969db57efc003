# storefront/utils/session_client.py
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

logger = logging.getLogger(__name__)


class SessionExpiredError(Exception):
    """The access token was rejected and could not be renewed."""

    def __init__(self, message: str = "Session expired"):
        super().__init__(message)
        self.message = message


class SingleFlight:
    """Coalesce concurrent calls into one in-flight awaitable.

    Callers arriving while a call is running await the same result (or
    exception) instead of starting their own.
    """

    def __init__(self):
        self._inflight: Optional[asyncio.Future] = None

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None

    async def do(self, fn: Callable[[], Awaitable[Any]]) -> Any:
        task = self._inflight
        if task is None:
            task = asyncio.ensure_future(fn())
            self._inflight = task
            task.add_done_callback(self._clear)
        # shield: one caller being cancelled must not cancel the shared call
        return await asyncio.shield(task)

    def _clear(self, task: asyncio.Future):
        if self._inflight is task:
            self._inflight = None


class SessionClient:
    """
    Storefront API client that keeps the access token fresh.

    On a 401 it refreshes once through ``/auth/refresh`` (the refresh token
    rides in the client's cookie jar) and replays the original request a
    single time. Concurrent 401s share one refresh round-trip. A second
    401, or a failed refresh, raises :class:`SessionExpiredError`. 403
    responses are returned as-is.
    """

    def __init__(self, base_url: str = "", access_token: Optional[str] = None, *,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 client: Optional[httpx.AsyncClient] = None,
                 refresh_path: str = "/auth/refresh",
                 timeout: float = 10.0):
        self._client = client or httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
        self.access_token = access_token
        self.refresh_path = refresh_path
        self._refresh_flight = SingleFlight()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    async def login(self, email: str, password: str) -> dict:
        response = await self._client.post("/auth/login", json={"email": email, "password": password})
        response.raise_for_status()
        data = response.json()
        self.access_token = data["access_token"]
        return data

    async def logout(self):
        await self._client.post("/auth/logout")
        self.access_token = None

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        token = self.access_token
        response = await self._send(method, url, token, **kwargs)
        if response.status_code != 401:
            return response

        await self._refresh(token)
        response = await self._send(method, url, self.access_token, **kwargs)
        if response.status_code == 401:
            self.access_token = None
            raise SessionExpiredError()
        return response

    async def get(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def patch(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)

    async def _send(self, method: str, url: str, token: Optional[str], **kwargs) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return await self._client.request(method, url, headers=headers, **kwargs)

    async def _refresh(self, rejected_token: Optional[str]):
        # Token already replaced by a refresh that finished after our request went out
        if self.access_token is not None and self.access_token != rejected_token:
            return
        await self._refresh_flight.do(self._do_refresh)

    async def _do_refresh(self) -> str:
        try:
            response = await self._client.post(self.refresh_path)
        except httpx.HTTPError as exc:
            logger.error("Token refresh failed: %s", exc)
            raise SessionExpiredError() from exc

        if response.status_code != 200:
            self.access_token = None
            raise SessionExpiredError()

        self.access_token = response.json()["access_token"]
        logger.info("Access token refreshed")
        return self.access_token
