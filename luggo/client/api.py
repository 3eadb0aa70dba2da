"""Async HTTP client for the LUGGO API.

Error bodies (``{"error": code, "detail": message}``) are mapped back onto the
server's error taxonomy; network failures become ``TransientInfraError``.
"""

from typing import Any

import httpx

from luggo.errors import TransientInfraError, error_from_response
from luggo.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 10.0


class LuggoAPI:
    """Thin wrapper around ``httpx.AsyncClient`` with bearer auth."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        api_prefix: str = "/api",
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.api_prefix = api_prefix.rstrip("/")
        self._token: str | None = None
        self._client = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    @property
    def token(self) -> str | None:
        return self._token

    def set_token(self, token: str | None) -> None:
        self._token = token

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "LuggoAPI":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        headers = kwargs.pop("headers", {})
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        url = f"{self.api_prefix}{path}"
        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("api_unreachable", method=method, path=path, error=str(exc))
            raise TransientInfraError(f"Could not reach the server: {exc}", "network_error") from exc

        if response.is_success:
            return response.json()

        try:
            payload = response.json()
        except ValueError:
            payload = None
        error = error_from_response(response.status_code, payload if isinstance(payload, dict) else None)
        logger.info(
            "api_request_failed",
            method=method,
            path=path,
            status=response.status_code,
            error=error.error_type,
        )
        raise error

    # --- Places ---

    async def list_places(self) -> list[dict]:
        return (await self._request("GET", "/places"))["places"]

    async def nearby_places(self, lat: float, lng: float, radius: float | None = None, limit: int | None = None) -> dict:
        params: dict[str, Any] = {"lat": lat, "lng": lng}
        if radius is not None:
            params["radius"] = radius
        if limit is not None:
            params["limit"] = limit
        return await self._request("GET", "/places/nearby", params=params)

    async def save_place(self, place: dict) -> dict:
        return (await self._request("POST", "/places", json=place))["place"]

    # --- Reviews ---

    async def list_reviews(self) -> list[dict]:
        return (await self._request("GET", "/reviews"))["reviews"]

    async def create_review(self, payload: dict) -> dict:
        """Returns ``{"review": ..., "place": ...}``."""
        return await self._request("POST", "/reviews", json=payload)

    async def vote(self, review_id: int, value: int) -> dict:
        """Returns ``{"reviewId", "up", "down", "my"}``."""
        return await self._request("POST", f"/reviews/{review_id}/vote", json={"value": value})

    # --- Session / reputation ---

    async def open_session(self) -> dict:
        return (await self._request("POST", "/auth/session"))["user"]

    async def reputation(self) -> list[dict]:
        return (await self._request("GET", "/reputation"))["reputation"]
