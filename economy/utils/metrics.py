"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
coins_credited_total = Counter(
    "coins_credited_total",
    "Total coins credited to wallets",
    ["source"],  # AD, GIFT, DAILY_CHECKIN
)

coins_debited_total = Counter(
    "coins_debited_total",
    "Total coins debited from wallets",
    ["source"],
)

ad_reward_rejections_total = Counter(
    "ad_reward_rejections_total",
    "Total rejected ad reward attempts",
    ["reason"],
)

unlocks_total = Counter(
    "unlocks_total",
    "Total unlock attempts by outcome",
    ["outcome", "method"],
)

checkins_total = Counter(
    "checkins_total",
    "Total daily check-in attempts by outcome",
    ["outcome"],
)

notifications_failed_total = Counter(
    "notifications_failed_total",
    "Total best-effort notifications that could not be dispatched or delivered",
)

catalog_requests_total = Counter(
    "catalog_requests_total",
    "Total catalog API requests",
    ["status"],
)

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open)",
    ["name"],
)

# Histograms
catalog_request_duration_seconds = Histogram(
    "catalog_request_duration_seconds",
    "Catalog API request duration",
    buckets=[0.05, 0.1, 0.25, 0.5, 1, 2, 5],
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
