"""Prometheus metrics for cache effectiveness and bank API reliability"""

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest

# Cache metrics
cache_lookup_counter = Counter(
    "bank_cache_lookups_total",
    "Cache lookups by dataset and outcome",
    ["dataset", "outcome"],  # transactions | accounts ; hit | miss | bypass
)

cache_write_failure_counter = Counter(
    "bank_cache_write_failures_total",
    "Cache files that could not be written",
    ["dataset"],
)

cache_load_failure_counter = Counter(
    "bank_cache_load_failures_total",
    "Cache files that could not be read or parsed",
    ["dataset"],
)

# Bank API metrics
bank_retry_counter = Counter(
    "bank_api_retries_total",
    "Bank API calls retried after a transient failure",
    ["operation"],
)

bank_fetch_failures_counter = Counter(
    "bank_fetch_failures_total",
    "Bank API calls that failed after retries or with a terminal error",
    ["operation"],
)

bank_latency_histogram = Histogram(
    "bank_api_latency_seconds",
    "Bank API call latency including pagination",
    ["operation"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)


def record_cache_lookup(dataset: str, cache_enabled: bool, force_refresh: bool, hit: bool) -> None:
    """Record whether a lookup was served from cache, missed, or skipped it"""
    if not cache_enabled or force_refresh:
        outcome = "bypass"
    elif hit:
        outcome = "hit"
    else:
        outcome = "miss"
    cache_lookup_counter.labels(dataset=dataset, outcome=outcome).inc()


def render_metrics() -> str:
    """Prometheus text exposition of the process registry"""
    return generate_latest(REGISTRY).decode("utf-8")
