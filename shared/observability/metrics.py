from prometheus_client import Counter, Histogram

# Business Metrics
ecomm_order_placement_total = Counter(
    "ecomm_order_placement_total",
    "Total order placements processed",
    ["status"] # Labels: 'placed', 'rejected', 'conflict', 'failed'
)

ecomm_order_placement_duration_seconds = Histogram(
    "ecomm_order_placement_duration_seconds",
    "Order placement duration in seconds"
)

ecomm_index_sync_failures_total = Counter(
    "ecomm_index_sync_failures_total",
    "Semantic index writes that failed or timed out",
    ["entity", "operation"] # Labels: entity='product'|'order', operation='delete'|'add'
)

ecomm_stock_units_sold_total = Counter(
    "ecomm_stock_units_sold_total",
    "Stock units deducted by committed orders"
)
