"""
Exchange Connectors - Metrics.

============================================================
PURPOSE
============================================================
In-process counters for connector traffic.

METRICS TRACKED:
- Request latency (overall and per endpoint)
- Request success/failure counts, with a one-minute window
- Failures by error type
- Order creations, cancellations and rejections

Nothing is exported; callers read summaries.

============================================================
"""

import logging
import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, Dict, List, Optional


logger = logging.getLogger(__name__)


# ============================================================
# METRIC TYPES
# ============================================================

class MetricType(Enum):
    """Types of counted events."""

    REQUEST_SUCCESS = "request_success"
    REQUEST_FAILURE = "request_failure"
    ORDER_CREATED = "order_created"
    ORDER_CANCELED = "order_canceled"
    ORDER_REJECTED = "order_rejected"
    RATE_LIMIT_HIT = "rate_limit_hit"
    TIMEOUT = "timeout"
    CONNECTION_ERROR = "connection_error"


# Error class name → extra counter
_ERROR_COUNTERS = {
    "DDoSProtection": MetricType.RATE_LIMIT_HIT,
    "RequestTimeout": MetricType.TIMEOUT,
    "NetworkError": MetricType.CONNECTION_ERROR,
    "ExchangeNotAvailable": MetricType.CONNECTION_ERROR,
    "OnMaintenance": MetricType.CONNECTION_ERROR,
}


@dataclass
class LatencyStats:
    """Latency statistics."""

    count: int = 0
    total_ms: float = 0.0
    min_ms: float = float("inf")
    max_ms: float = 0.0

    @property
    def avg_ms(self) -> float:
        return self.total_ms / self.count if self.count > 0 else 0.0

    def record(self, latency_ms: float) -> None:
        self.count += 1
        self.total_ms += latency_ms
        self.min_ms = min(self.min_ms, latency_ms)
        self.max_ms = max(self.max_ms, latency_ms)

    def to_dict(self) -> Dict[str, float]:
        return {
            "count": self.count,
            "avg_ms": self.avg_ms,
            "min_ms": self.min_ms if self.count else 0.0,
            "max_ms": self.max_ms,
        }


@dataclass
class CounterStats:
    """Counter with a rolling one-minute window."""

    total: int = 0
    _stamps: Deque[float] = field(default_factory=deque)

    def increment(self) -> None:
        now = time.monotonic()
        self.total += 1
        self._stamps.append(now)
        self._expire(now)

    def _expire(self, now: float) -> None:
        while self._stamps and self._stamps[0] <= now - 60:
            self._stamps.popleft()

    @property
    def last_minute(self) -> int:
        self._expire(time.monotonic())
        return len(self._stamps)


# ============================================================
# CONNECTOR METRICS
# ============================================================

class ConnectorMetrics:
    """
    Metrics collector for one connector.
    """

    MAX_RECENT = 100

    def __init__(self, exchange_id: str):
        self._exchange_id = exchange_id
        self._start = time.monotonic()
        self._latency: Dict[str, LatencyStats] = defaultdict(LatencyStats)
        self._overall = LatencyStats()
        self._counters: Dict[MetricType, CounterStats] = {mt: CounterStats() for mt in MetricType}
        self._errors: Dict[str, int] = defaultdict(int)
        self._recent: Deque[Dict[str, Any]] = deque(maxlen=self.MAX_RECENT)

    @property
    def exchange_id(self) -> str:
        return self._exchange_id

    # --------------------------------------------------------
    # RECORDING
    # --------------------------------------------------------

    def record_request(
        self,
        endpoint: str,
        latency_ms: float,
        success: bool,
        status_code: Optional[int] = None,
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record one request.

        Args:
            endpoint: Path template of the endpoint
            latency_ms: Round trip in ms
            success: Whether a usable answer came back
            status_code: HTTP status, if any
            error_type: Exception class name when failed
        """
        self._latency[endpoint].record(latency_ms)
        self._overall.record(latency_ms)

        if success:
            self._counters[MetricType.REQUEST_SUCCESS].increment()
        else:
            self._counters[MetricType.REQUEST_FAILURE].increment()
            if error_type:
                self._errors[error_type] += 1
                extra = _ERROR_COUNTERS.get(error_type)
                if extra is not None:
                    self._counters[extra].increment()

        self._recent.append({
            "endpoint": endpoint,
            "latency_ms": latency_ms,
            "success": success,
            "status_code": status_code,
            "error_type": error_type,
        })

    def record_order_created(self) -> None:
        self._counters[MetricType.ORDER_CREATED].increment()

    def record_order_canceled(self) -> None:
        self._counters[MetricType.ORDER_CANCELED].increment()

    def record_order_rejected(self, error_type: Optional[str] = None) -> None:
        self._counters[MetricType.ORDER_REJECTED].increment()
        if error_type:
            self._errors[error_type] += 1

    # --------------------------------------------------------
    # REPORTING
    # --------------------------------------------------------

    def count(self, metric: MetricType) -> int:
        return self._counters[metric].total

    def get_summary(self) -> Dict[str, Any]:
        """
        Get metrics summary.

        Returns:
            Dict with all metrics
        """
        success = self._counters[MetricType.REQUEST_SUCCESS]
        failure = self._counters[MetricType.REQUEST_FAILURE]
        total = success.total + failure.total

        return {
            "exchange_id": self._exchange_id,
            "uptime_seconds": time.monotonic() - self._start,
            "requests": {
                "total": total,
                "success": success.total,
                "failure": failure.total,
                "success_rate": success.total / total if total > 0 else 1.0,
                "last_minute": {
                    "success": success.last_minute,
                    "failure": failure.last_minute,
                },
            },
            "latency": self._overall.to_dict(),
            "orders": {
                "created": self.count(MetricType.ORDER_CREATED),
                "canceled": self.count(MetricType.ORDER_CANCELED),
                "rejected": self.count(MetricType.ORDER_REJECTED),
            },
            "errors": {
                "rate_limit_hits": self.count(MetricType.RATE_LIMIT_HIT),
                "timeouts": self.count(MetricType.TIMEOUT),
                "connection_errors": self.count(MetricType.CONNECTION_ERROR),
                "by_type": dict(self._errors),
            },
        }

    def get_latency_by_endpoint(self) -> Dict[str, Dict[str, float]]:
        return {endpoint: stats.to_dict() for endpoint, stats in self._latency.items()}

    def get_recent_requests(self, limit: int = 20) -> List[Dict[str, Any]]:
        return list(self._recent)[-limit:]

    def reset(self) -> None:
        """Reset all metrics."""
        self._start = time.monotonic()
        self._latency.clear()
        self._overall = LatencyStats()
        self._counters = {mt: CounterStats() for mt in MetricType}
        self._errors.clear()
        self._recent.clear()


# ============================================================
# METRICS AGGREGATOR
# ============================================================

class MetricsAggregator:
    """
    Collects metrics of several connectors.
    """

    def __init__(self):
        self._connectors: Dict[str, ConnectorMetrics] = {}

    def register(self, metrics: ConnectorMetrics) -> None:
        self._connectors[metrics.exchange_id] = metrics

    def unregister(self, exchange_id: str) -> None:
        self._connectors.pop(exchange_id, None)

    def get_all_summaries(self) -> Dict[str, Dict[str, Any]]:
        return {
            exchange_id: metrics.get_summary()
            for exchange_id, metrics in self._connectors.items()
        }

    def get_aggregate_summary(self) -> Dict[str, Any]:
        """Totals across registered connectors."""
        total_success = 0
        total_failure = 0
        latency_sum = 0.0
        latency_count = 0

        for metrics in self._connectors.values():
            total_success += metrics.count(MetricType.REQUEST_SUCCESS)
            total_failure += metrics.count(MetricType.REQUEST_FAILURE)
            latency_sum += metrics._overall.total_ms
            latency_count += metrics._overall.count

        total = total_success + total_failure
        return {
            "exchanges": list(self._connectors),
            "total_requests": total,
            "total_success": total_success,
            "total_failure": total_failure,
            "success_rate": total_success / total if total > 0 else 1.0,
            "avg_latency_ms": latency_sum / latency_count if latency_count > 0 else 0.0,
        }


# Global aggregator instance
_global_aggregator = MetricsAggregator()


def get_global_aggregator() -> MetricsAggregator:
    """Get global metrics aggregator."""
    return _global_aggregator
