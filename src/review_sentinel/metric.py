from prometheus_client import Counter

request_counter = Counter(
    "review_sentinel_num_req", "Total number of requests", labelnames=["path"]
)
webhook_counter = Counter(
    "review_sentinel_num_webhook", "Total number of webhooks", labelnames=["event"]
)
webhook_skipped_counter = Counter(
    "review_sentinel_num_webhook_skipped",
    "Total number of skipped webhooks",
    labelnames=["event", "action"],
)

error_counter = Counter(
    "review_sentinel_error_counter", "Total number of errors", labelnames=["context"]
)

api_call_count = Counter(
    "review_sentinel_num_api_calls", "Total number of GitHub API calls"
)

team_lookup_counter = Counter(
    "review_sentinel_num_team_lookups",
    "Number of team membership lookups",
    labelnames=["result"],
)

comment_post_counter = Counter(
    "review_sentinel_comment_post",
    "Number of review status comment updates",
    labelnames=["result"],
)

scheduler_debounce_total = Counter(
    "review_sentinel_scheduler_debounce_total",
    "Review status scheduler decisions",
    labelnames=["result"],
)
