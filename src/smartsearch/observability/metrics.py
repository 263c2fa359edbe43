"""Prometheus metrics for the search service.

Defines and exposes operational metrics for monitoring and alerting.
"""

from prometheus_client import Counter, Histogram, Gauge

# Search metrics
search_requests_total = Counter(
    "smartsearch_search_requests_total",
    "Total search requests by the path that produced the response",
    ["path"]  # path: semantic|fallback|unavailable
)

search_duration_seconds = Histogram(
    "smartsearch_search_duration_seconds",
    "End-to-end search latency in seconds",
    ["path"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

search_results_count = Histogram(
    "smartsearch_search_results_count",
    "Number of results returned per search",
    buckets=[0, 1, 5, 10, 20, 50, 100]
)

store_query_errors_total = Counter(
    "smartsearch_store_query_errors_total",
    "Similarity store query failures",
    ["entity_type", "mode"]  # mode: vector|lexical
)

# Embedding metrics
embedding_cache_requests_total = Counter(
    "smartsearch_embedding_cache_requests_total",
    "Embedding cache lookups",
    ["result"]  # result: hit|miss
)

embedding_cache_size = Gauge(
    "smartsearch_embedding_cache_size",
    "Number of entries currently held by the embedding cache"
)

embedding_calls_total = Counter(
    "smartsearch_embedding_calls_total",
    "Outbound embedding provider calls",
    ["model", "status"]  # status: success|error
)

embedding_latency_ms = Histogram(
    "smartsearch_embedding_latency_ms",
    "Embedding provider call latency in milliseconds",
    ["model"],
    buckets=[50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000]
)

embedding_tokens_total = Counter(
    "smartsearch_embedding_tokens_total",
    "Total tokens consumed by embedding calls",
    ["model"]
)

# Indexing metrics
entities_indexed_total = Counter(
    "smartsearch_entities_indexed_total",
    "Entity indexing outcomes",
    ["entity_type", "status"]  # status: indexed|skipped|failed
)

reindex_runs_total = Counter(
    "smartsearch_reindex_runs_total",
    "Background reindex task runs",
    ["scope", "status"]  # status: completed|skipped|failed
)

# HTTP metrics
http_requests_total = Counter(
    "smartsearch_http_requests_total",
    "HTTP requests by route template and status code",
    ["method", "route", "status"]
)

http_request_duration_seconds = Histogram(
    "smartsearch_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "route"],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)
