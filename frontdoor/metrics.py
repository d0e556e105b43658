from prometheus_client import Counter, Gauge, Histogram

PROXY_REQUESTS = Counter(
    "frontdoor_proxy_requests_total",
    "Requests forwarded to a backend origin",
    ["route", "method", "status_code"],
)

PROXY_LATENCY = Histogram(
    "frontdoor_proxy_request_duration_seconds",
    "Time until the origin's response headers arrive",
    ["route"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

ACTIVE_REQUESTS = Gauge(
    "frontdoor_active_requests",
    "Proxied requests currently in flight",
)

UPSTREAM_ERRORS = Counter(
    "frontdoor_upstream_errors_total",
    "Requests that could not reach their origin",
    ["route"],
)

LISTENERS_RUNNING = Gauge(
    "frontdoor_listeners_running",
    "Listeners launched by this process and not yet closed",
)

CONFIG_RELOADS = Counter(
    "frontdoor_config_reloads_total",
    "Config file reload attempts",
    ["result"],
)
