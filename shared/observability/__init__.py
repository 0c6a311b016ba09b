from .setup import setup_observability
from .metrics import (
    erp_storage_failures_total,
    erp_order_lines_skipped_total,
    erp_removals_blocked_total,
    erp_orders_written_total
)
