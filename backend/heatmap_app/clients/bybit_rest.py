"""Bybit REST API client for fetching candle history."""

import asyncio
import logging
from typing import Any

import httpx

from heatmap_core.models import Candle
from heatmap_core.models.config import BYBIT_REQUEST_LIMIT, MAX_BAR_LIMIT

logger = logging.getLogger(__name__)

_MINUTE_MS = 60_000
_LETTER_INTERVAL_MS = {
    "D": 24 * 60 * _MINUTE_MS,
    "W": 7 * 24 * 60 * _MINUTE_MS,
    "M": 30 * 24 * 60 * _MINUTE_MS,
}


class BybitAPIError(RuntimeError):
    """Bybit answered 2xx but reported a non-zero retCode."""

    def __init__(self, ret_code: int, message: str):
        super().__init__(f"Bybit API error {ret_code}: {message}")
        self.ret_code = ret_code


class RateLimiter:
    """Simple rate limiter for API calls."""

    def __init__(self, calls_per_minute: int = 600):
        self.calls_per_minute = calls_per_minute
        self.interval = 60.0 / calls_per_minute
        self.last_call = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait if necessary to respect rate limit."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            wait_time = self.last_call + self.interval - loop.time()
            if wait_time > 0:
                await asyncio.sleep(wait_time)
            self.last_call = loop.time()


def interval_ms(interval: str) -> int:
    """Bar duration in milliseconds for a Bybit interval ("5", "60", "D"...)."""
    if interval.isdigit():
        return int(interval) * _MINUTE_MS
    return _LETTER_INTERVAL_MS.get(interval.upper(), _MINUTE_MS)


def parse_kline(entry: list[Any], interval: str) -> Candle:
    """Convert one ``result.list`` row into a Candle."""
    open_time = int(entry[0])
    return Candle(
        open_time=open_time,
        open=float(entry[1]),
        high=float(entry[2]),
        low=float(entry[3]),
        close=float(entry[4]),
        volume=float(entry[5]),
        turnover=float(entry[6]) if len(entry) > 6 else 0.0,
        close_time=open_time + interval_ms(interval) - 1,
    )


class BybitRestClient:
    """Bybit v5 market-data REST client."""

    BASE_URL = "https://api.bybit.com"

    def __init__(
        self,
        base_url: str = BASE_URL,
        category: str = "linear",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.category = category
        self.timeout = timeout
        self.rate_limiter = RateLimiter()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self, method: str, endpoint: str, params: dict[str, Any] | None = None
    ) -> Any:
        """Make an API request with rate limiting."""
        await self.rate_limiter.acquire()
        client = await self._get_client()
        response = await client.request(method, endpoint, params=params)
        response.raise_for_status()
        payload = response.json()

        if payload.get("retCode") != 0 or not isinstance(payload.get("result"), dict):
            raise BybitAPIError(payload.get("retCode", -1), payload.get("retMsg") or "Bybit API returned an error")
        return payload["result"]

    async def get_candles(self, symbol: str, interval: str, limit: int = MAX_BAR_LIMIT) -> list[Candle]:
        """
        Fetch the most recent candles, walking backwards in batches.

        Args:
            symbol: Trading pair (e.g., "BTCUSDT")
            interval: Bybit interval (e.g., "5", "60")
            limit: Number of candles wanted (clamped to 1..500)

        Returns:
            Candles in ascending openTime order, deduplicated
        """
        wanted = min(max(int(limit), 1), MAX_BAR_LIMIT)
        collected: dict[int, Candle] = {}
        end_time: int | None = None

        while len(collected) < wanted:
            batch_limit = min(wanted - len(collected), BYBIT_REQUEST_LIMIT)
            params: dict[str, Any] = {
                "category": self.category,
                "symbol": symbol,
                "interval": interval,
                "limit": batch_limit,
            }
            if end_time is not None:
                params["end"] = end_time

            result = await self._request("GET", "/v5/market/kline", params)
            rows = result.get("list") or []
            if not rows:
                break

            candles = [parse_kline(row, interval) for row in rows]
            for candle in candles:
                collected[candle.open_time] = candle

            if len(candles) < batch_limit:
                break

            end_time = min(c.open_time for c in candles) - 1

        ordered = sorted(collected.values(), key=lambda c: c.open_time)
        logger.debug("Fetched %d candles for %s %s", len(ordered), symbol, interval)
        return ordered[-wanted:]
