"""Monitoring configuration for the trainer."""
from prometheus_client import Counter, Histogram, start_http_server

# Detail cache metrics
cache_hits = Counter(
    "vocabtrainer_cache_hits_total",
    "Number of word detail lookups answered from the cache",
)

cache_misses = Counter(
    "vocabtrainer_cache_misses_total",
    "Number of word detail lookups that needed a fetch",
)

coalesced_requests = Counter(
    "vocabtrainer_coalesced_requests_total",
    "Number of callers that joined an in-flight fetch instead of issuing one",
    ["mode"],
)

detail_fetches = Counter(
    "vocabtrainer_detail_fetches_total",
    "Number of requests sent to the content service",
    ["mode", "outcome"],
)

fetch_duration = Histogram(
    "vocabtrainer_fetch_duration_seconds",
    "Duration of content service requests in seconds",
    ["mode"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
)

stale_results_discarded = Counter(
    "vocabtrainer_stale_results_discarded_total",
    "Number of fetch results dropped because the cache context changed",
)

cache_invalidations = Counter(
    "vocabtrainer_cache_invalidations_total",
    "Number of times the detail cache was cleared",
    ["reason"],
)

# Learning metrics
words_learned = Counter(
    "vocabtrainer_words_learned_total",
    "Total number of words marked as learned",
)

reviews_recorded = Counter(
    "vocabtrainer_reviews_total",
    "Total number of recorded review outcomes",
    ["mode", "outcome"],
)

# Error metrics
error_count = Counter(
    "vocabtrainer_errors_total",
    "Total number of errors encountered",
    ["error_type"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
