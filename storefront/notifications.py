from __future__ import annotations

from datetime import datetime
from typing import List, Sequence

from .models import Notification, Order, Product

LOW_STOCK_LIMIT = 5


def new_order_notice(order: Order) -> Notification:
    return Notification(
        title="New Order Received",
        message=f"Order #{order.orderNumber} has been placed by {order.customer.name}",
        type="info",
        priority="medium",
        sentAt=datetime.now(),
    )


def payment_failed_notice(order: Order) -> Notification:
    return Notification(
        title="Payment Failed",
        message=f"Payment for order #{order.orderNumber} failed. Please contact customer.",
        type="error",
        priority="urgent",
        sentAt=datetime.now(),
    )


def low_stock_notice(product: Product) -> Notification:
    return Notification(
        title="Low Stock Alert",
        message=f'Product "{product.name}" is running low on stock ({product.stock} items left)',
        type="warning",
        priority="high",
        sentAt=datetime.now(),
    )


def derive_notifications(orders: Sequence[Order], products: Sequence[Product]) -> List[Notification]:
    """Admin alerts for the current state of the shop.

    Pending orders, failed payments and active products at or below
    ``LOW_STOCK_LIMIT``.
    """
    out: List[Notification] = []
    for o in sorted(orders, key=lambda o: o.createdAt, reverse=True):
        if o.status == "pending":
            out.append(new_order_notice(o))
        if o.paymentStatus == "failed":
            out.append(payment_failed_notice(o))
    out.extend(low_stock_notice(p) for p in products if p.isActive and p.stock <= LOW_STOCK_LIMIT)
    return out
