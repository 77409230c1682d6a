"""Unit tests for Pyth oracle — price response parsing, staleness and errors."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from trove_replica.config import PythConfig
from trove_replica.oracles.pyth import PythOracle

NOW = 1_700_000_000


@pytest.fixture()
def oracle() -> PythOracle:
    return PythOracle(
        PythConfig(
            hermes_url="https://hermes.example.com/v2/updates/price/latest",
            feeds={"SOL": "0xaaa111", "ETH": "bbb222", "WSOL": "aaa111"},
            max_age_seconds=60,
        )
    )


def _mock_session(status: int = 200, data: dict | None = None) -> AsyncMock:
    mock_response = AsyncMock()
    mock_response.status = status
    mock_response.json = AsyncMock(return_value=data or {})
    mock_response.__aenter__ = AsyncMock(return_value=mock_response)
    mock_response.__aexit__ = AsyncMock(return_value=None)

    mock_session = AsyncMock()
    mock_session.get = MagicMock(return_value=mock_response)
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=None)
    return mock_session


def _item(feed_id: str, price: str, expo: int = -8, publish_time: int = NOW) -> dict:
    return {
        "id": feed_id,
        "price": {"price": price, "expo": expo, "publish_time": publish_time},
    }


class TestPythOracleFetchPrices:
    @pytest.mark.asyncio
    async def test_parses_response_correctly(self, oracle: PythOracle) -> None:
        data = {
            "parsed": [
                _item("aaa111", "15000000000"),
                _item("bbb222", "350000000000"),
            ]
        }
        mock_session = _mock_session(data=data)

        with patch("trove_replica.oracles.pyth.aiohttp.ClientSession", return_value=mock_session):
            with patch("trove_replica.oracles.pyth.aiohttp.TCPConnector"):
                with patch("trove_replica.oracles.pyth.time.time", return_value=NOW + 5):
                    prices = await oracle.fetch_prices()

        assert prices["SOL"] == pytest.approx(150.0)
        assert prices["WSOL"] == pytest.approx(150.0)
        assert prices["ETH"] == pytest.approx(3500.0)

    @pytest.mark.asyncio
    async def test_drops_stale_price(self, oracle: PythOracle) -> None:
        data = {
            "parsed": [
                _item("aaa111", "15000000000", publish_time=NOW - 120),
                _item("bbb222", "350000000000"),
            ]
        }
        mock_session = _mock_session(data=data)

        with patch("trove_replica.oracles.pyth.aiohttp.ClientSession", return_value=mock_session):
            with patch("trove_replica.oracles.pyth.aiohttp.TCPConnector"):
                with patch("trove_replica.oracles.pyth.time.time", return_value=NOW):
                    prices = await oracle.fetch_prices()

        assert "SOL" not in prices
        assert prices["ETH"] == pytest.approx(3500.0)

    @pytest.mark.asyncio
    async def test_symbol_filter_limits_query(self, oracle: PythOracle) -> None:
        mock_session = _mock_session(data={"parsed": [_item("bbb222", "1")]})

        with patch("trove_replica.oracles.pyth.aiohttp.ClientSession", return_value=mock_session):
            with patch("trove_replica.oracles.pyth.aiohttp.TCPConnector"):
                with patch("trove_replica.oracles.pyth.time.time", return_value=NOW):
                    await oracle.fetch_prices(["ETH"])

        url = mock_session.get.call_args[0][0]
        assert "ids[]=bbb222" in url
        assert "aaa111" not in url

    @pytest.mark.asyncio
    async def test_no_feeds_skips_request(self) -> None:
        oracle = PythOracle(PythConfig(feeds={}))
        with patch("trove_replica.oracles.pyth.aiohttp.ClientSession") as session_cls:
            assert await oracle.fetch_prices() == {}
        session_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_handles_http_error(self, oracle: PythOracle) -> None:
        mock_session = _mock_session(status=500)

        with patch("trove_replica.oracles.pyth.aiohttp.ClientSession", return_value=mock_session):
            with patch("trove_replica.oracles.pyth.aiohttp.TCPConnector"):
                prices = await oracle.fetch_prices()

        assert prices == {}

    @pytest.mark.asyncio
    async def test_handles_network_error(self, oracle: PythOracle) -> None:
        mock_session = AsyncMock()
        mock_session.get = MagicMock(side_effect=ConnectionError("timeout"))
        mock_session.__aenter__ = AsyncMock(return_value=mock_session)
        mock_session.__aexit__ = AsyncMock(return_value=None)

        with patch("trove_replica.oracles.pyth.aiohttp.ClientSession", return_value=mock_session):
            with patch("trove_replica.oracles.pyth.aiohttp.TCPConnector"):
                prices = await oracle.fetch_prices()

        assert prices == {}
