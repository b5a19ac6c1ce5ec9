"""
Prometheus metrics for the SkillSwap session engine.

Service timings are fed by the @measure_operation decorator; domain
counters cover participant locking, lifecycle transitions and the
expiry sweeper.
"""

from threading import Lock
from time import monotonic
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

# Custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "skillswap_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "skillswap_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "skillswap_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

session_lock_events_total = Counter(
    "skillswap_session_lock_events_total",
    "Participant lock acquire/release outcomes",
    ["action", "outcome"],
    registry=REGISTRY,
)

session_transitions_total = Counter(
    "skillswap_session_transitions_total",
    "Applied session lifecycle transitions",
    ["transition"],
    registry=REGISTRY,
)

expired_sessions_total = Counter(
    "skillswap_expired_sessions_total",
    "Pending sessions moved to expired by the sweeper",
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    _cache_lock: Lock = Lock()
    _cache_payload: Optional[bytes] = None
    _cache_ts: Optional[float] = None
    _cache_ttl_seconds: float = 1.0

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'SessionService')
            operation: Operation/method name (e.g., 'create_session_request')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()

        if error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_session_lock(action: str, outcome: str) -> None:
        session_lock_events_total.labels(action=action, outcome=outcome).inc()

    @staticmethod
    def record_transition(transition: str) -> None:
        session_transitions_total.labels(transition=transition).inc()

    @staticmethod
    def record_expired_sessions(count: int) -> None:
        if count > 0:
            expired_sessions_total.inc(count)

    @staticmethod
    def get_metrics() -> bytes:
        """Generate Prometheus metrics in exposition format (cached briefly)."""
        now = monotonic()
        with PrometheusMetrics._cache_lock:
            payload = PrometheusMetrics._cache_payload
            ts = PrometheusMetrics._cache_ts
            if payload is not None and ts is not None and (now - ts) <= PrometheusMetrics._cache_ttl_seconds:
                return payload
            payload = generate_latest(REGISTRY)
            PrometheusMetrics._cache_payload = payload
            PrometheusMetrics._cache_ts = now
            return payload

    @staticmethod
    def _invalidate_cache() -> None:
        """Invalidate cached metrics so next scrape refreshes."""
        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_ts = None
            PrometheusMetrics._cache_payload = None


prometheus_metrics = PrometheusMetrics()
