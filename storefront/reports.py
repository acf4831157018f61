from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List, Sequence

from .models import Order, Product


def _growth(current: float, previous: float) -> float:
    if previous <= 0:
        return 0.0
    return round((current - previous) / previous * 100.0, 1)


def _in_window(orders: Sequence[Order], start: datetime, end: datetime, include_end: bool = True) -> List[Order]:
    if include_end:
        return [o for o in orders if start <= o.createdAt <= end]
    return [o for o in orders if start <= o.createdAt < end]


def _month_start(dt: datetime, back: int) -> datetime:
    y, m = dt.year, dt.month - back
    while m <= 0:
        m += 12
        y -= 1
    return datetime(y, m, 1)


def customers_from_orders(orders: Sequence[Order]) -> List[Dict[str, Any]]:
    """One row per customer email, newest order first."""
    by_email: Dict[str, Dict[str, Any]] = {}
    for o in sorted(orders, key=lambda o: o.createdAt, reverse=True):
        key = o.customer.email.strip().lower()
        row = by_email.get(key)
        if row is None:
            row = by_email[key] = {
                "name": o.customer.name,
                "email": o.customer.email,
                "phone": o.customer.phone,
                "totalOrders": 0,
                "totalSpent": 0.0,
                "lastOrderDate": o.createdAt,
            }
        row["totalOrders"] += 1
        if o.status != "cancelled":
            row["totalSpent"] = round(row["totalSpent"] + o.total, 2)
    return list(by_email.values())


def build_report(
    orders: Sequence[Order],
    products: Sequence[Product],
    days: int = 30,
    now: datetime | None = None,
) -> Dict[str, Any]:
    """Aggregate dashboard figures for the last ``days`` days.

    Growth figures compare against the preceding window of equal length.
    Cancelled orders count towards order totals but not revenue.
    """
    now = now or datetime.now()
    days = max(int(days), 1)
    start = now - timedelta(days=days)
    prev_start = start - timedelta(days=days)

    current = _in_window(orders, start, now)
    previous = _in_window(orders, prev_start, start, include_end=False)

    def revenue(batch: Sequence[Order]) -> float:
        return round(sum(o.total for o in batch if o.status != "cancelled"), 2)

    def customers(batch: Sequence[Order]) -> int:
        return len({o.customer.email.strip().lower() for o in batch})

    total_revenue = revenue(current)
    total_orders = len(current)

    sold: Dict[str, Dict[str, Any]] = {}
    for o in current:
        if o.status == "cancelled":
            continue
        for it in o.items:
            row = sold.setdefault(it.productId, {"name": it.name, "sales": 0, "revenue": 0.0})
            row["sales"] += it.quantity
            row["revenue"] = round(row["revenue"] + it.price * it.quantity, 2)
    top_products = sorted(sold.values(), key=lambda r: (-r["revenue"], -r["sales"]))[:5]

    recent = sorted(current, key=lambda o: o.createdAt, reverse=True)[:5]
    recent_orders = [
        {
            "id": o.orderNumber,
            "customer": o.customer.name or "Unknown",
            "amount": o.total,
            "status": o.status,
            "date": o.createdAt,
        }
        for o in recent
    ]

    monthly: List[Dict[str, Any]] = []
    for back in range(5, -1, -1):
        m_start = _month_start(now, back)
        if back > 0:
            m_end = _month_start(now, back - 1)
            batch = [o for o in orders if m_start <= o.createdAt < m_end]
        else:
            batch = [o for o in orders if m_start <= o.createdAt <= now]
        monthly.append({
            "month": m_start.strftime("%b"),
            "revenue": revenue(batch),
            "orders": len(batch),
        })

    return {
        "totalRevenue": total_revenue,
        "totalOrders": total_orders,
        "totalCustomers": customers(orders),
        "totalProducts": len(products),
        "revenueGrowth": _growth(total_revenue, revenue(previous)),
        "ordersGrowth": _growth(total_orders, len(previous)),
        "customersGrowth": _growth(customers(current), customers(previous)),
        "averageOrderValue": round(total_revenue / total_orders, 2) if total_orders else 0.0,
        "topProducts": top_products,
        "recentOrders": recent_orders,
        "monthlyRevenue": monthly,
    }
