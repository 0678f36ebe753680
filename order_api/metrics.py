"""
Prometheus metrics: orders created, discounts applied, status transitions, unexpected service errors.
"""
from prometheus_client import Counter, generate_latest

orders_created_total = Counter(
    "orders_created_total",
    "Total orders created",
    ["customer_segment"],
)
order_discounts_applied_total = Counter(
    "order_discounts_applied_total",
    "Total orders created with a non-zero discount",
    ["customer_segment"],
)

order_status_transitions_total = Counter(
    "order_status_transitions_total",
    "Total order status transitions persisted",
    ["from_status", "to_status"],
)
order_status_transitions_rejected_total = Counter(
    "order_status_transitions_rejected_total",
    "Total order status transitions rejected by the lifecycle rules",
    ["from_status", "to_status"],
)

service_unexpected_errors_total = Counter(
    "service_unexpected_errors_total",
    "Total service operations that ended in an unexpected error",
    ["operation"],
)


def get_metrics_content_type():
    return "text/plain; charset=utf-8; version=0.0.4"


def get_metrics_bytes():
    return generate_latest()
