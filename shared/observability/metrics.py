from prometheus_client import Counter

# Storage Metrics
erp_storage_failures_total = Counter(
    "erp_storage_failures_total",
    "Backend faults surfaced as StorageFailure",
    ["operation"] # Labels: 'customer.create', 'order.update', etc.
)

erp_order_lines_skipped_total = Counter(
    "erp_order_lines_skipped_total",
    "Order lines dropped on read because their product no longer resolves"
)

# Business Metrics
erp_removals_blocked_total = Counter(
    "erp_removals_blocked_total",
    "Deletes vetoed because dependent orders exist",
    ["entity"] # Labels: 'customer', 'product'
)

erp_orders_written_total = Counter(
    "erp_orders_written_total",
    "Orders persisted together with their lines",
    ["action"] # Labels: 'create', 'update'
)
