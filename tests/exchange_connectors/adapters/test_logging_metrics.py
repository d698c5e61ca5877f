"""
Connector Logging and Metrics Tests.

============================================================
PURPOSE
============================================================
- Credential masking in headers, params, URLs and free text
- Structured request / order log lines
- Metrics counters, latency and aggregation

============================================================
"""

import json
import logging

import pytest

from exchange_connectors.adapters.logging_utils import (
    ConnectorLogger,
    mask_headers,
    mask_params,
    mask_text,
    mask_url,
    mask_value,
)
from exchange_connectors.adapters.metrics import (
    ConnectorMetrics,
    MetricType,
    get_global_aggregator,
)


# ============================================================
# LOGGING TESTS
# ============================================================

class TestCredentialMasking:
    """Tests for credential masking."""

    def test_mask_value(self):
        """Only the first characters survive."""
        masked = mask_value("abc123def456ghi789", show_chars=4)

        assert masked == "abc1...***"
        assert "def456" not in masked

    def test_mask_short_value(self):
        """Short values are fully masked."""
        assert mask_value("abc", show_chars=4) == "***"
        assert mask_value("") == "***"

    def test_mask_headers(self):
        """Auth headers of the supported exchanges are masked."""
        headers = {
            "X-BCIO-APIKEY": "my_secret_api_key_12345",
            "ACCESS-SIGN": "deadbeefcafebabe",
            "Content-Type": "application/json",
        }
        masked = mask_headers(headers)

        assert masked["X-BCIO-APIKEY"] == "my_s...***"
        assert masked["ACCESS-SIGN"] == "dead...***"
        assert masked["Content-Type"] == "application/json"

    def test_mask_params(self):
        """Sensitive params are masked, nested dicts recursed."""
        masked = mask_params({
            "apiKey": "abcdefgh",
            "symbol": "BTC/USDT",
            "nested": {"tradePwd": "hunter22"},
        })

        assert masked["apiKey"] == "abcd...***"
        assert masked["symbol"] == "BTC/USDT"
        assert masked["nested"]["tradePwd"] == "hunt...***"

    def test_mask_url(self):
        """Signature query params are masked."""
        url = mask_url("https://api.blockchain.io/v1/order?symbol=ETHBTC&signature=abcdef0123")

        assert "abcdef0123" not in url
        assert "signature=***" in url
        assert "symbol=ETHBTC" in url

    def test_mask_text(self):
        """Long hex strings are redacted from free text."""
        text = "sign=" + "a" * 64 + " done"
        assert "a" * 64 not in mask_text(text)


class TestConnectorLogger:
    """Tests for ConnectorLogger."""

    def test_log_request(self, caplog):
        """Request lines carry a masked URL and correlation id."""
        connector_logger = ConnectorLogger("bcio")

        with caplog.at_level(logging.DEBUG, logger=connector_logger.name):
            request_id = connector_logger.log_request(
                "account",
                "GET",
                "https://api.blockchain.io/v1/account?timestamp=1&signature=ffff0000",
                headers={"X-BCIO-APIKEY": "abcdefghijkl"},
            )

        assert request_id == "bcio-1"
        line = caplog.records[-1].getMessage()
        assert line.startswith("REQUEST: ")
        payload = json.loads(line[len("REQUEST: "):])
        assert payload["request_id"] == "bcio-1"
        assert "ffff0000" not in payload["url"]
        assert payload["headers"]["X-BCIO-APIKEY"] == "abcd...***"

    def test_request_ids_increase(self):
        connector_logger = ConnectorLogger("coinbene")
        first = connector_logger.log_request("a", "GET", "https://x")
        second = connector_logger.log_request("b", "GET", "https://x")
        assert (first, second) == ("coinbene-1", "coinbene-2")

    def test_log_order_error_is_warning(self, caplog):
        """Failed order actions log at WARNING."""
        connector_logger = ConnectorLogger("gateiofu")

        with caplog.at_level(logging.INFO, logger=connector_logger.name):
            connector_logger.log_order("create", error_message="insufficient balance")

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert "ORDER_ERROR" in record.getMessage()


# ============================================================
# METRICS TESTS
# ============================================================

class TestConnectorMetrics:
    """Tests for ConnectorMetrics."""

    def test_record_request(self):
        """Successful requests update counters and latency."""
        metrics = ConnectorMetrics("test")

        metrics.record_request("depth", 150.0, True, 200)

        summary = metrics.get_summary()
        assert summary["requests"]["total"] == 1
        assert summary["requests"]["success"] == 1
        assert summary["latency"]["avg_ms"] == 150.0

    def test_record_failure(self):
        """Rate-limit failures also bump the rate-limit counter."""
        metrics = ConnectorMetrics("test")

        metrics.record_request("depth", 100.0, False, 429, "DDoSProtection")

        summary = metrics.get_summary()
        assert summary["requests"]["failure"] == 1
        assert summary["errors"]["rate_limit_hits"] == 1
        assert summary["errors"]["by_type"] == {"DDoSProtection": 1}

    def test_record_orders(self):
        """Order counters."""
        metrics = ConnectorMetrics("test")

        metrics.record_order_created()
        metrics.record_order_canceled()
        metrics.record_order_rejected("InvalidOrder")

        summary = metrics.get_summary()
        assert summary["orders"] == {"created": 1, "canceled": 1, "rejected": 1}
        assert metrics.count(MetricType.ORDER_REJECTED) == 1

    def test_latency_by_endpoint(self):
        metrics = ConnectorMetrics("test")

        metrics.record_request("order", 100, True)
        metrics.record_request("order", 200, True)
        metrics.record_request("balance", 50, True)

        latency = metrics.get_latency_by_endpoint()
        assert latency["order"]["count"] == 2
        assert latency["order"]["avg_ms"] == 150.0

    def test_recent_requests(self):
        metrics = ConnectorMetrics("test")
        for i in range(5):
            metrics.record_request(f"endpoint{i}", 100, True)

        recent = metrics.get_recent_requests(limit=3)
        assert [r["endpoint"] for r in recent] == ["endpoint2", "endpoint3", "endpoint4"]

    def test_reset(self):
        metrics = ConnectorMetrics("test")
        metrics.record_request("order", 100, True)
        metrics.reset()
        assert metrics.get_summary()["requests"]["total"] == 0


class TestMetricsAggregator:
    """Tests for MetricsAggregator."""

    def test_register_and_aggregate(self):
        aggregator = get_global_aggregator()
        metrics = ConnectorMetrics("aggregate_test_exchange")
        metrics.record_request("depth", 10, True)

        aggregator.register(metrics)
        try:
            assert "aggregate_test_exchange" in aggregator.get_all_summaries()
            assert "aggregate_test_exchange" in aggregator.get_aggregate_summary()["exchanges"]
        finally:
            aggregator.unregister("aggregate_test_exchange")

        assert "aggregate_test_exchange" not in aggregator.get_all_summaries()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
