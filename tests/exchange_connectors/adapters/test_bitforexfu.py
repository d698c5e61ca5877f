"""
Bitforex Futures Connector Tests.
"""

from decimal import Decimal
from urllib.parse import parse_qs

import pytest

from exchange_connectors.types import PrecisionMode
from exchange_connectors.adapters.bitforexfu import BitforexFuturesAdapter
from exchange_connectors.adapters.errors import AuthenticationError, ExchangeError
from exchange_connectors.adapters.signing import hmac_sign


CONTRACTS = {
    "success": True,
    "data": [
        {"symbol": "swap-usd-btc", "unitQuantity": 1, "minOrderVolume": 1,
         "maxOrderVolume": 2000000, "minOrderPrice": 1e-8, "maxOrderPrice": 1000000,
         "priceOrderPrecision": 1, "feeRateMaker": 0.0004, "feeRateTaker": 0.0006},
    ],
}


@pytest.fixture
def bitforexfu(make_connector, stub_transport):
    stub_transport.route("swap/contract/listAll", CONTRACTS)
    return make_connector(BitforexFuturesAdapter)


class TestMarkets:
    """Tests for swap contracts."""

    @pytest.mark.asyncio
    async def test_parse_contract(self, bitforexfu):
        """swap-{quote}-{base} ids."""
        market = (await bitforexfu.load_markets())["BTC/USD"]

        assert market.id == "swap-usd-btc"
        assert market.swap
        assert market.precision.mode == PrecisionMode.TICK_SIZE
        assert market.precision.price == Decimal("0.1")
        assert market.precision.amount == Decimal("1")
        assert market.limits.amount.max == Decimal("2000000")
        assert market.maker == Decimal("0.0004")
        assert market.taker == Decimal("0.0006")


class TestMarketData:
    """Tests for depth and candles."""

    @pytest.mark.asyncio
    async def test_fetch_order_book(self, bitforexfu, stub_transport):
        stub_transport.route("mkapi/depth", {
            "success": True,
            "time": 1533035297418,
            "data": {
                "bids": [{"price": 9000.5, "amount": 12}, {"price": 9000, "amount": 3}],
                "asks": [{"price": 9001, "amount": 7}],
            },
        })

        book = await bitforexfu.fetch_order_book("BTC/USD", limit=1)

        assert book.bids == [[Decimal("9000.5"), Decimal("12")]]
        assert book.asks == [[Decimal("9001"), Decimal("7")]]
        assert book.timestamp == 1533035297418
        assert stub_transport.last.url == (
            "https://www.bitforex.com/contract/mkapi/depth?businessType=swap-usd-btc&depth=1"
        )

    @pytest.mark.asyncio
    async def test_fetch_ohlcv(self, bitforexfu, stub_transport):
        stub_transport.route("mkapi/kline", {
            "success": True,
            "data": [
                {"time": 1000, "open": 1, "high": 2, "low": 0.5, "close": 1.5, "vol": 10},
                {"time": 2000, "open": 1.5, "high": 2, "low": 1, "close": 2, "vol": 4},
            ],
        })

        candles = await bitforexfu.fetch_ohlcv("BTC/USD", "1h", since=1500, limit=5)

        assert [c[0] for c in candles] == [2000]
        query = parse_qs(stub_transport.last.url.split("?", 1)[1])
        assert query == {"businessType": ["swap-usd-btc"], "kType": ["1hour"], "size": ["5"]}


class TestSigning:
    """Tests for signData."""

    def test_private_sign(self, bitforexfu):
        signed = bitforexfu.sign("swap/position", "private", "POST", {"symbol": "swap-usd-btc"})

        payload, signature = signed.body.rsplit("&signData=", 1)
        assert payload.startswith("accessKey=test_key&nonce=")
        assert payload.endswith("&symbol=swap-usd-btc")
        assert signature == hmac_sign("test_secret", f"/swap/position?{payload}")
        assert signed.url == "https://www.bitforex.com/contract/swap/position"


class TestErrors:
    """Tests for error mapping."""

    @pytest.mark.asyncio
    async def test_mapped_code(self, bitforexfu, stub_transport):
        stub_transport.route("mkapi/depth", {"success": False, "code": "1013", "message": "auth"})

        with pytest.raises(AuthenticationError):
            await bitforexfu.api["depth"]({"businessType": "swap-usd-btc"})

    @pytest.mark.asyncio
    async def test_unmapped_code(self, bitforexfu, stub_transport):
        stub_transport.route("mkapi/depth", {"success": False, "code": "9999"})

        with pytest.raises(ExchangeError):
            await bitforexfu.api["depth"]({"businessType": "swap-usd-btc"})


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
