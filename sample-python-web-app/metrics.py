# File: metrics.py

from prometheus_client import CollectorRegistry, Counter, Histogram

REGISTRY = CollectorRegistry()

METRICS = {
    "http_requests": Counter(
        "sample_app_http_requests_total",
        "Total HTTP requests",
        ["method", "endpoint", "status"],
        registry=REGISTRY,
    ),
    "request_latency": Histogram(
        "sample_app_request_duration_ms",
        "Time taken to serve a request in milliseconds",
        ["endpoint"],
        buckets=(1, 5, 10, 25, 50, 100, 250, 500, 1000),
        registry=REGISTRY,
    ),
}
