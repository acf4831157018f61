from __future__ import annotations

import logging
import re
from typing import List, Optional

from .models import Order
from .repository import Repository

logger = logging.getLogger(__name__)

# Most specific first. Captured ids must contain a digit so plain words
# ("shipping", "status") are never mistaken for order numbers.
ORDER_ID_PATTERNS = [
    re.compile(r"\b(ord-[a-z0-9_-]{2,})", re.I),
    re.compile(r"\border\s*(?:id|number|no\.?)?\s*[#:]?\s*([a-z0-9_-]{3,})", re.I),
    re.compile(r"\btracking\s*(?:number|no\.?)?\s*[#:]?\s*([a-z0-9_-]{6,})", re.I),
    # bare record ids: uuid4 hex as generated here, and 24-hex object ids
    re.compile(r"\b([a-f0-9]{32})\b", re.I),
    re.compile(r"\b([a-f0-9]{24})\b", re.I),
]

SKIP_WORDS = {"status", "check", "track", "find", "look", "help", "what", "how", "where", "when", "why", "update"}

STATUS_PHRASES = [
    "order status", "track order", "where is my order", "check order",
    "order update", "my order", "order number", "order tracking", "order progress",
]

ASK_FOR_NUMBER = (
    "I can help you check your order status! Please provide your order number "
    "(e.g., 'order #123' or 'ORD-123') and I'll look it up for you."
)

STATUS_NOTES = {
    "pending": "Your order is being processed. We'll update you once it's confirmed.",
    "processing": "Your order is being prepared.",
    "confirmed": "Your order has been confirmed and is being prepared for shipment.",
    "shipped": "Your order has been shipped! You should receive it soon.",
    "delivered": "Your order has been delivered! Thank you for your purchase.",
    "cancelled": "This order has been cancelled.",
}


def extract_order_id(message: str) -> Optional[str]:
    text = message or ""
    for pattern in ORDER_ID_PATTERNS:
        for m in pattern.finditer(text):
            candidate = m.group(1)
            if candidate.lower() in SKIP_WORDS or not any(ch.isdigit() for ch in candidate):
                continue
            return candidate
    return None


def is_status_inquiry(message: str) -> bool:
    t = (message or "").lower()
    if any(p in t for p in STATUS_PHRASES):
        return True
    return "order" in t and "status" in t


def _candidates(order_id: str) -> List[str]:
    key = order_id.strip().lstrip("#").lower()
    out = [key]
    if not key.startswith("ord-"):
        out.append(f"ord-{key}")
    return out


def find_order(orders: Repository[Order], order_id: str) -> Optional[Order]:
    direct = orders.get(order_id)
    if direct is not None:
        return direct
    keys = set(_candidates(order_id))
    return orders.find(lambda o: o.orderNumber.lower() in keys or o.id.lower() in keys)


def format_status(order: Order, currency: str = "PKR") -> str:
    lines = [
        f"Order #{order.orderNumber} Status:<br><br>",
        f"Status: {order.status}<br>",
        f"Payment: {order.paymentStatus}<br>",
        f"Total: {currency} {order.total:g}<br>",
        f"Order Date: {order.createdAt.strftime('%Y-%m-%d')}<br><br>",
        STATUS_NOTES.get(order.status, f"Current status: {order.status}"),
    ]
    return "".join(lines)


def status_reply(orders: Repository[Order], order_id: str, currency: str = "PKR") -> str:
    order = find_order(orders, order_id)
    if order is None:
        logger.info(f"Order lookup miss: {order_id}")
        return (
            f"I couldn't find an order with ID \"{order_id}\". "
            "Please check your order number and try again."
        )
    return format_status(order, currency)
