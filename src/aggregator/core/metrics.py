from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "path", "status_code"],
)

EXTERNAL_API_COUNT = Counter(
    "external_api_requests_total",
    "Total number of external API requests",
    ["source", "status"],
)

EXTERNAL_API_DURATION = Histogram(
    "external_api_duration_seconds",
    "Duration of external API requests in seconds",
    ["source"],
)

CACHE_HITS = Counter(
    "cache_hits_total", "Provider listings served from the product cache", ["provider"]
)
CACHE_MISSES = Counter(
    "cache_misses_total", "Provider listings that required a live fetch", ["provider"]
)

CACHE_PRODUCTS = Gauge(
    "cache_products", "Number of products currently cached per provider", ["provider"]
)

WARMUP_RUNS = Counter(
    "warmup_runs_total",
    "Warm-up outcomes per provider",
    ["provider", "outcome"],
)
