"""HTTP transport for the legacy osu! endpoints.

Classes:
    OsuTransport: A thin wrapper around a shared httpx client that retries
        transient failures and reports every failure as a TransportError.
"""

import asyncio
from typing import Any

import httpx

import app.settings as settings
from app.errors import TransportError
from app.logger import fetcher_logger as logger


class OsuTransport:
    """Performs GET requests against the osu! website and its v1 API.

    Timeouts, connection errors and 5xx/429 responses are retried with a
    linear backoff; other 4xx responses fail immediately.

    Attributes:
        base_url: Root URL of the osu! website, without trailing slash.
        api_key: The v1 API key sent with every `get_beatmaps` request.
        timeout: Default timeout in seconds for a single request.
        retries: Number of attempts for a request before giving up.
        backoff: Base backoff in seconds between attempts.
    """

    def __init__(
        self,
        base_url: str = settings.OSU_API_URL,
        api_key: str = settings.OSU_API_KEY,
        timeout: float = settings.HTTP_TIMEOUT,
        retries: int = settings.HTTP_RETRIES,
        backoff: float = settings.HTTP_BACKOFF,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.retries = max(retries, 1)
        self.backoff = backoff
        self.client = client or httpx.AsyncClient()

    async def close(self) -> None:
        await self.client.aclose()

    async def request(
        self,
        path: str,
        params: dict[str, Any],
        timeout: float | None = None,
    ) -> httpx.Response:
        """Send a GET request, retrying transient failures.

        Raises:
            TransportError: If the request failed after all retries, or
                the endpoint answered with a non-retryable error status.
        """
        url = f"{self.base_url}{path}"
        last_error: Exception | None = None

        for attempt in range(1, self.retries + 1):
            try:
                response = await self.client.get(
                    url,
                    params=params,
                    timeout=timeout if timeout is not None else self.timeout,
                )
                response.raise_for_status()
                return response

            except httpx.TimeoutException as exc:
                last_error = exc
                logger.warning(f"Timed out requesting {path} (attempt {attempt}/{self.retries})")
            except httpx.HTTPStatusError as exc:
                code = exc.response.status_code
                if code < 500 and code != 429:
                    raise TransportError(f"{path} answered with status {code}") from exc

                last_error = exc
                logger.warning(f"HTTP error requesting {path} (status: {code}, attempt {attempt}/{self.retries})")
            except httpx.HTTPError as exc:
                last_error = exc
                logger.warning(f"Failed to request {path}: {exc!r} (attempt {attempt}/{self.retries})")

            if attempt < self.retries:
                await asyncio.sleep(self.backoff * attempt)

        raise TransportError(f"failed to request {path} after {self.retries} attempts") from last_error

    async def get_beatmaps(self, timeout: float | None = None, **params: str | int) -> list[dict[str, Any]]:
        """Call the v1 `get_beatmaps` endpoint.

        https://github.com/ppy/osu-api/wiki#apiget_beatmaps
        """
        params["k"] = self.api_key
        logger.debug(f"Doing osu!api (get_beatmaps) request {params | {'k': '***'}}")

        response = await self.request("/api/get_beatmaps", params, timeout=timeout)
        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError("get_beatmaps answered with invalid JSON") from exc

        # errors (e.g. a bad api key) come back as {"error": "..."}
        if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
            raise TransportError(f"unexpected get_beatmaps response: {str(data)[:200]}")

        return data

    async def get_text(self, path: str, params: dict[str, Any], timeout: float | None = None) -> str:
        response = await self.request(path, params, timeout=timeout)
        return response.text
