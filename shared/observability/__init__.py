from .setup import setup_observability
from .metrics import (
    ecomm_order_placement_total,
    ecomm_order_placement_duration_seconds,
    ecomm_index_sync_failures_total,
    ecomm_stock_units_sold_total
)
