from prometheus_client import Counter, Histogram

request_counter = Counter(
    "benchbot_num_req", "Total number of requests", labelnames=["path"]
)
webhook_counter = Counter(
    "benchbot_num_webhook", "Total number of webhooks", labelnames=["event"]
)
webhook_skipped_counter = Counter(
    "benchbot_num_webhook_skipped",
    "Total number of webhooks not triggering a benchmark",
    labelnames=["event"],
)

benchmark_counter = Counter(
    "benchbot_num_benchmark",
    "Number of benchmark runs by delegate and outcome",
    labelnames=["delegate", "outcome"],
)

benchmark_duration = Histogram(
    "benchbot_benchmark_seconds",
    "Wall time of benchmark delegate invocations",
    labelnames=["delegate"],
    buckets=(10, 60, 300, 900, 1800, 3600, 7200, float("inf")),
)

comment_counter = Counter(
    "benchbot_num_comment",
    "Number of comments created or updated",
    labelnames=["operation"],
)

error_counter = Counter(
    "benchbot_error_counter", "Total number of errors", labelnames=["context"]
)

api_call_count = Counter("benchbot_num_api_calls", "Total number of GitHub API calls")
