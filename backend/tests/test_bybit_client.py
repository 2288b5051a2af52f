"""Tests for the Bybit REST client against an in-process fake exchange."""

import httpx
import pytest

from heatmap_app.clients.bybit_rest import (
    BybitAPIError,
    BybitRestClient,
    RateLimiter,
    interval_ms,
    parse_kline,
)

FIVE_MIN_MS = 5 * 60_000
FIRST_OPEN = 1_700_000_000_000


class FakeExchange:
    """Serves /v5/market/kline from a fixed pool of 5m bars, newest first."""

    def __init__(self, bars: int = 600):
        self.open_times = [FIRST_OPEN + i * FIVE_MIN_MS for i in range(bars)]
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        params = request.url.params
        limit = int(params["limit"])
        end = int(params["end"]) if "end" in params else None

        eligible = [t for t in self.open_times if end is None or t <= end]
        rows = [
            [str(t), "100", "101", "99", "100.5", "10", "1005"]
            for t in reversed(eligible[-limit:])
        ]
        return httpx.Response(
            200,
            json={"retCode": 0, "retMsg": "OK", "result": {"category": "linear", "list": rows}},
        )


def _client(handler) -> BybitRestClient:
    client = BybitRestClient(base_url="https://bybit.test", transport=httpx.MockTransport(handler))
    client.rate_limiter = RateLimiter(calls_per_minute=600_000)
    return client


class TestParsing:
    """Tests for kline parsing helpers."""

    def test_interval_ms(self):
        assert interval_ms("5") == FIVE_MIN_MS
        assert interval_ms("D") == 24 * 60 * 60_000

    def test_parse_kline(self):
        candle = parse_kline([str(FIRST_OPEN), "1", "2", "0.5", "1.5", "100", "150"], "5")

        assert candle.open_time == FIRST_OPEN
        assert candle.close_time == FIRST_OPEN + FIVE_MIN_MS - 1
        assert (candle.open, candle.high, candle.low, candle.close) == (1.0, 2.0, 0.5, 1.5)
        assert candle.turnover == 150.0


class TestGetCandles:
    """Tests for paginated candle fetching."""

    @pytest.mark.asyncio
    async def test_single_page(self):
        exchange = FakeExchange()
        client = _client(exchange)
        try:
            candles = await client.get_candles("BTCUSDT", "5", limit=150)
        finally:
            await client.close()

        assert len(candles) == 150
        assert len(exchange.requests) == 1
        params = exchange.requests[0].url.params
        assert params["category"] == "linear"
        assert params["symbol"] == "BTCUSDT"
        assert params["interval"] == "5"
        assert "end" not in params

    @pytest.mark.asyncio
    async def test_paginates_backwards(self):
        exchange = FakeExchange()
        client = _client(exchange)
        try:
            candles = await client.get_candles("BTCUSDT", "5", limit=250)
        finally:
            await client.close()

        assert len(candles) == 250
        assert [int(r.url.params["limit"]) for r in exchange.requests] == [200, 50]

        first_page_oldest = exchange.open_times[-200]
        assert int(exchange.requests[1].url.params["end"]) == first_page_oldest - 1

        open_times = [c.open_time for c in candles]
        assert open_times == sorted(open_times)
        assert len(set(open_times)) == 250
        assert open_times[-1] == exchange.open_times[-1]

    @pytest.mark.asyncio
    async def test_limit_clamped(self):
        exchange = FakeExchange(bars=800)
        client = _client(exchange)
        try:
            candles = await client.get_candles("BTCUSDT", "5", limit=5000)
        finally:
            await client.close()

        assert len(candles) == 500
        assert len(exchange.requests) == 3

    @pytest.mark.asyncio
    async def test_short_history_stops(self):
        exchange = FakeExchange(bars=120)
        client = _client(exchange)
        try:
            candles = await client.get_candles("BTCUSDT", "5", limit=500)
        finally:
            await client.close()

        assert len(candles) == 120
        assert len(exchange.requests) == 1

    @pytest.mark.asyncio
    async def test_overlapping_pages_deduplicated(self):
        """An exchange ignoring ``end`` keeps returning the same page."""
        pages = []

        def handler(request):
            pages.append(request)
            rows = [
                [str(FIRST_OPEN + i * FIVE_MIN_MS), "1", "1", "1", "1", "1", "1"]
                for i in reversed(range(len(pages) * 10, len(pages) * 10 + 200))
            ]
            return httpx.Response(200, json={"retCode": 0, "result": {"list": rows}})

        client = _client(handler)
        try:
            candles = await client.get_candles("BTCUSDT", "5", limit=300)
        finally:
            await client.close()

        open_times = [c.open_time for c in candles]
        assert len(open_times) == len(set(open_times)) == 300
        assert open_times == sorted(open_times)


class TestErrors:
    """Tests for error propagation."""

    @pytest.mark.asyncio
    async def test_ret_code_error(self):
        def handler(request):
            return httpx.Response(200, json={"retCode": 10001, "retMsg": "params error", "result": {}})

        client = _client(handler)
        try:
            with pytest.raises(BybitAPIError, match="params error") as exc_info:
                await client.get_candles("BTCUSDT", "5", limit=10)
        finally:
            await client.close()

        assert exc_info.value.ret_code == 10001

    @pytest.mark.asyncio
    async def test_http_error(self):
        def handler(request):
            return httpx.Response(500, text="boom")

        client = _client(handler)
        try:
            with pytest.raises(httpx.HTTPStatusError):
                await client.get_candles("BTCUSDT", "5", limit=10)
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_missing_result(self):
        def handler(request):
            return httpx.Response(200, json={"retCode": 0, "result": None})

        client = _client(handler)
        try:
            with pytest.raises(BybitAPIError):
                await client.get_candles("BTCUSDT", "5", limit=10)
        finally:
            await client.close()
