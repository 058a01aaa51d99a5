"""Rate-limit counters, registered on the shared scrape registry."""

from prometheus_client import Counter

from app.monitoring.prometheus_metrics import REGISTRY

# action: allow | block
rl_decisions = Counter(
    "roomrental_rl_decisions_total",
    "Rate-limit decisions per policy",
    ["policy", "action"],
    registry=REGISTRY,
)

# Redis unreachable or script failure; the request is let through.
rl_eval_errors = Counter(
    "roomrental_rl_eval_errors_total",
    "Rate-limit evaluations that failed and fell open",
    ["policy"],
    registry=REGISTRY,
)
