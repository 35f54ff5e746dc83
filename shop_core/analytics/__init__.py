# =============================================================================
# shop_core/analytics/__init__.py
# Order Dashboard Analytics
# =============================================================================

from .order_stats import (
    FILTER_ALL,
    FILTER_COMPLETED,
    FILTER_OPEN,
    OrderStats,
    compute_order_stats,
    filter_orders,
    orders_to_frame,
    products_to_frame,
)

__all__ = [
    "FILTER_ALL",
    "FILTER_COMPLETED",
    "FILTER_OPEN",
    "OrderStats",
    "compute_order_stats",
    "filter_orders",
    "orders_to_frame",
    "products_to_frame",
]
