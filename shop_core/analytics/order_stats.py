# =============================================================================
# shop_core/analytics/order_stats.py
# Dashboard Statistics and Order List Filtering
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Sequence

import pandas as pd

from shop_core.models.orders import Order, OrderStatus, TextureMode


TEXTURE_LABELS = {
    TextureMode.CATALOG: "Padrão",
    TextureMode.CUSTOM: "Custom",
}

FILTER_OPEN = "open"
FILTER_COMPLETED = "completed"
FILTER_ALL = "all"


def orders_to_frame(orders: Sequence[Order]) -> pd.DataFrame:
    """One row per order."""
    columns = ["id", "created_at", "customer_name", "status", "price", "shipping_cost", "is_paid", "product_count"]
    if not orders:
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame([
        {
            "id": o.id,
            "created_at": o.created_at,
            "customer_name": o.customer.name,
            "status": o.status.value,
            "price": float(o.price),
            "shipping_cost": float(o.shipping_cost) if o.shipping_cost is not None else 0.0,
            "is_paid": o.is_paid,
            "product_count": len(o.products),
        }
        for o in orders
    ], columns=columns)
    df["created_at"] = pd.to_datetime(df["created_at"], errors="coerce", utc=True)
    return df


def products_to_frame(orders: Sequence[Order]) -> pd.DataFrame:
    """One row per product line."""
    rows = [
        {
            "order_id": o.id,
            "texture_type": TEXTURE_LABELS[p.texture_type],
            "texture_value": p.texture_value,
            "all_printed": bool(p.print_status and p.print_status.all_printed),
        }
        for o in orders
        for p in o.products
    ]
    return pd.DataFrame(rows, columns=["order_id", "texture_type", "texture_value", "all_printed"])


@dataclass
class OrderStats:
    total_orders: int = 0
    open_orders: int = 0
    status_counts: Dict[str, int] = field(default_factory=dict)
    texture_counts: Dict[str, int] = field(default_factory=dict)
    revenue: float = 0.0
    paid_total: float = 0.0
    unpaid_total: float = 0.0
    shipping_total: float = 0.0
    orders_per_day: pd.Series = field(default_factory=lambda: pd.Series(dtype="int64"))


def compute_order_stats(orders: Sequence[Order]) -> OrderStats:
    """Figures shown above the order list."""
    df = orders_to_frame(orders)
    status_counts = {s.value: 0 for s in OrderStatus}
    if df.empty:
        return OrderStats(status_counts=status_counts)

    status_counts.update(df["status"].value_counts().to_dict())

    products = products_to_frame(orders)
    texture_counts = {name: int(v) for name, v in products["texture_type"].value_counts().items()}

    paid = df["is_paid"].astype(bool)
    dated = df.dropna(subset=["created_at"])
    per_day = dated.groupby(dated["created_at"].dt.date).size().sort_index()

    return OrderStats(
        total_orders=len(df),
        open_orders=int(sum(OrderStatus(s).is_open for s in df["status"])),
        status_counts={k: int(v) for k, v in status_counts.items()},
        texture_counts=texture_counts,
        revenue=round(float(df["price"].sum()), 2),
        paid_total=round(float(df.loc[paid, "price"].sum()), 2),
        unpaid_total=round(float(df.loc[~paid, "price"].sum()), 2),
        shipping_total=round(float(df["shipping_cost"].sum()), 2),
        orders_per_day=per_day,
    )


def filter_orders(
    orders: Sequence[Order],
    search: str = "",
    category: str = FILTER_OPEN,
    only_paid: bool = False,
) -> list:
    """
    Order list filter: free-text search over customer name, tax id, order id
    and partner name; open / completed / all; optionally paid only.
    """
    term = search.strip().lower()

    def matches(order: Order) -> bool:
        if term:
            haystack = (
                order.customer.name.lower(),
                order.customer.cpf,
                order.id,
                (order.customer.partner_name or "").lower(),
            )
            if not any(term in h for h in haystack):
                return False
        if category == FILTER_OPEN and not order.status.is_open:
            return False
        if category == FILTER_COMPLETED and order.status.is_open:
            return False
        if only_paid and not order.is_paid:
            return False
        return True

    return [o for o in orders if matches(o)]
