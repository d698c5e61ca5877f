"""
Bitclude Connector Tests.
"""

from decimal import Decimal

import pytest

from exchange_connectors.adapters.bitclude import BitcludeAdapter
from exchange_connectors.adapters.errors import BadRequest, BadSymbol, ExchangeError, InsufficientFunds


TICKERS = {
    "btc_pln": {"last": "30000", "max24H": "31000", "min24H": "29000", "bid": "29990", "ask": "30010"},
    "eth_btc": {"last": "0.05", "max24H": "0.06", "min24H": "0.04", "bid": "0.049", "ask": "0.051"},
}


@pytest.fixture
def bitclude(make_connector, stub_transport):
    stub_transport.route("stats/ticker.json", TICKERS)
    return make_connector(BitcludeAdapter)


class TestMarkets:
    """Tests for markets derived from ticker keys."""

    @pytest.mark.asyncio
    async def test_markets_from_keys(self, bitclude):
        markets = await bitclude.load_markets()

        assert sorted(markets) == ["BTC/PLN", "ETH/BTC"]
        market = markets["BTC/PLN"]
        assert market.id == "btc_pln"
        assert (market.base_id, market.quote_id) == ("btc", "pln")
        assert market.precision.amount is None
        assert market.limits.amount.min is None


class TestTickers:
    """Tests for tickers."""

    @pytest.mark.asyncio
    async def test_fetch_tickers(self, bitclude):
        tickers = await bitclude.fetch_tickers()

        ticker = tickers["BTC/PLN"]
        assert ticker.high == Decimal("31000")
        assert ticker.low == Decimal("29000")
        assert ticker.last == ticker.close == Decimal("30000")
        assert ticker.timestamp is not None
        assert ticker.datetime.endswith("Z")

    @pytest.mark.asyncio
    async def test_fetch_ticker(self, bitclude):
        ticker = await bitclude.fetch_ticker("ETH/BTC")

        assert ticker.symbol == "ETH/BTC"
        assert ticker.bid == Decimal("0.049")

    @pytest.mark.asyncio
    async def test_unknown_symbol(self, bitclude):
        """Symbols the exchange does not list raise BadSymbol."""
        with pytest.raises(BadSymbol):
            await bitclude.fetch_ticker("FOO/BAR")


class TestErrors:
    """Tests for error mapping."""

    @pytest.mark.asyncio
    async def test_exact_message(self, bitclude, stub_transport):
        stub_transport.route("stats/ticker.json", {"success": False, "error": "Not enough balances"})

        with pytest.raises(InsufficientFunds):
            await bitclude.api["ticker"]()

    @pytest.mark.asyncio
    async def test_broad_message(self, bitclude, stub_transport):
        stub_transport.route("stats/ticker.json", {"success": False, "error": "No such market: abc_def"})

        with pytest.raises(BadRequest):
            await bitclude.api["ticker"]()

    @pytest.mark.asyncio
    async def test_unknown_message(self, bitclude, stub_transport):
        stub_transport.route("stats/ticker.json", {"success": False, "error": "Something else"})

        with pytest.raises(ExchangeError):
            await bitclude.api["ticker"]()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
