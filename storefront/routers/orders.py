from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from ..deps import changes_from, get_stores, require_admin
from ..models import CustomerInfo, DeliveryDays, Order, OrderItem, ShippingAddress, ShippingMethod, ShippingZone
from ..notifications import new_order_notice, payment_failed_notice
from ..order_lookup import find_order
from ..repository import Stores

router = APIRouter(tags=["orders"])
logger = logging.getLogger(__name__)

ORDER_STATUSES = {"pending", "processing", "confirmed", "shipped", "delivered", "cancelled"}
PAYMENT_STATUSES = {"pending", "paid", "unpaid", "failed", "refunded"}


class OrderItemPayload(BaseModel):
    productId: str
    name: Optional[str] = None
    price: Optional[float] = None
    quantity: int
    image: Optional[str] = None


class OrderPayload(BaseModel):
    orderNumber: Optional[str] = None
    customer: Optional[CustomerInfo] = None
    items: List[OrderItemPayload] = []
    shippingAddress: Optional[ShippingAddress] = None
    shippingMethodId: Optional[str] = None
    subtotal: Optional[float] = None
    shipping: Optional[float] = None
    tax: Optional[float] = None
    total: Optional[float] = None
    paymentMethod: str = "cod"


class OrderStatusUpdate(BaseModel):
    id: Optional[str] = None
    status: Optional[str] = None
    paymentStatus: Optional[str] = None


class ShippingMethodPayload(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    baseRate: Optional[float] = None
    freeShippingThreshold: Optional[float] = None
    estimatedDays: Optional[int] = None
    isActive: Optional[bool] = None


class ShippingZonePayload(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    countries: Optional[List[str]] = None
    regions: Optional[List[str]] = None
    freeShippingThreshold: Optional[float] = None
    standardRate: Optional[float] = None
    expressRate: Optional[float] = None
    estimatedDays: Optional[DeliveryDays] = None
    isActive: Optional[bool] = None


def next_order_number(orders: List[Order]) -> str:
    highest = 0
    for o in orders:
        m = re.fullmatch(r"ORD-(\d+)", o.orderNumber, re.I)
        if m:
            highest = max(highest, int(m.group(1)))
    return f"ORD-{highest + 1:03d}"


def _fill_items(stores: Stores, raw: List[OrderItemPayload]) -> List[OrderItem]:
    """Drop zero quantities and backfill name/price/image from the catalog."""
    items: List[OrderItem] = []
    for it in raw:
        if it.quantity <= 0:
            continue
        entry: Dict[str, Any] = {"productId": it.productId, "quantity": it.quantity}
        prod = stores.products.get(it.productId)
        entry["name"] = it.name or (prod.name if prod else None)
        entry["price"] = it.price if it.price is not None else (prod.price if prod else None)
        entry["image"] = it.image or (prod.images[0] if prod and prod.images else None)
        if not entry["name"] or entry["price"] is None:
            raise HTTPException(
                status_code=400,
                detail="Each item must include name and price (resolved from catalog or provided).",
            )
        items.append(OrderItem.parse_obj(entry))
    if not items:
        raise HTTPException(status_code=400, detail="All quantities are zero.")
    return items


def _shipping_cost(stores: Stores, method_id: Optional[str], subtotal: float) -> float:
    if not method_id:
        return 0.0
    method = stores.shipping_methods.get(method_id)
    if method is None or not method.isActive:
        raise HTTPException(status_code=400, detail="Shipping method not available")
    return method.rate_for(subtotal)


# ============================================================
# Orders
# ============================================================
@router.get("/api/orders")
def list_orders(
    status: Optional[str] = Query(None),
    paymentStatus: Optional[str] = Query(None),
    stores: Stores = Depends(get_stores),
    _=Depends(require_admin),
):
    orders = sorted(stores.orders.list(), key=lambda o: o.createdAt, reverse=True)
    if status and status != "all":
        orders = [o for o in orders if o.status == status]
    if paymentStatus and paymentStatus != "all":
        orders = [o for o in orders if o.paymentStatus == paymentStatus]
    return {"success": True, "data": orders, "count": len(orders)}


@router.post("/api/orders", status_code=201)
def create_order(req: OrderPayload, stores: Stores = Depends(get_stores)):
    if req.customer is None or not req.items:
        raise HTTPException(status_code=400, detail="Missing required fields: customer, items")
    items = _fill_items(stores, req.items)
    subtotal = round(sum(i.price * i.quantity for i in items), 2) if req.subtotal is None else req.subtotal
    shipping = _shipping_cost(stores, req.shippingMethodId, subtotal) if req.shipping is None else req.shipping
    tax = req.tax or 0.0
    total = round(subtotal + shipping + tax, 2) if req.total is None else req.total

    existing = stores.orders.list()
    number = (req.orderNumber or "").strip() or next_order_number(existing)
    if any(o.orderNumber.lower() == number.lower() for o in existing):
        raise HTTPException(status_code=400, detail=f"Order number {number} already exists")
    try:
        order = Order(
            orderNumber=number,
            customer=req.customer,
            items=items,
            shippingAddress=req.shippingAddress,
            subtotal=subtotal,
            shipping=shipping,
            tax=tax,
            total=total,
            paymentMethod=req.paymentMethod,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    stores.orders.create(order)
    logger.info(f"Order created: {order.orderNumber} total={order.total}")
    stores.notifications.create(new_order_notice(order))
    return {"success": True, "data": order}


def _apply_status(stores: Stores, order_id: str, upd: OrderStatusUpdate) -> Order:
    changes: Dict[str, Any] = {}
    if upd.status:
        if upd.status not in ORDER_STATUSES:
            raise HTTPException(status_code=400, detail=f"Invalid status: {upd.status}")
        changes["status"] = upd.status
    if upd.paymentStatus:
        if upd.paymentStatus not in PAYMENT_STATUSES:
            raise HTTPException(status_code=400, detail=f"Invalid payment status: {upd.paymentStatus}")
        changes["paymentStatus"] = upd.paymentStatus
    if not changes:
        raise HTTPException(status_code=400, detail="Nothing to update: status or paymentStatus required")
    order = find_order(stores.orders, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    updated = stores.orders.update(order.id, changes)
    if changes.get("paymentStatus") == "failed" and order.paymentStatus != "failed":
        stores.notifications.create(payment_failed_notice(updated))
    logger.info(f"Order {order.orderNumber} updated: {changes}")
    return updated


@router.put("/api/orders")
def update_order(upd: OrderStatusUpdate, stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    if not upd.id or not upd.status:
        raise HTTPException(status_code=400, detail="Missing required fields: id, status")
    return {"success": True, "data": _apply_status(stores, upd.id, upd)}


@router.get("/api/orders/{order_id}")
def get_order(order_id: str, stores: Stores = Depends(get_stores)):
    order = find_order(stores.orders, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return {"success": True, "data": order}


@router.put("/api/orders/{order_id}")
def update_order_by_id(order_id: str, upd: OrderStatusUpdate,
                       stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    return {"success": True, "data": _apply_status(stores, order_id, upd)}


# ============================================================
# Shipping methods
# ============================================================
@router.get("/api/shipping/methods")
def list_shipping_methods(stores: Stores = Depends(get_stores)):
    methods = stores.shipping_methods.list()
    return {"success": True, "data": methods, "count": len(methods)}


@router.post("/api/shipping/methods", status_code=201)
def create_shipping_method(payload: ShippingMethodPayload,
                           stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    if not payload.name or not payload.type or payload.baseRate is None or not payload.estimatedDays:
        raise HTTPException(status_code=400, detail="Missing required fields: name, type, baseRate, estimatedDays")
    try:
        method = ShippingMethod.parse_obj(changes_from(payload))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    stores.shipping_methods.create(method)
    return {"success": True, "data": method}


@router.put("/api/shipping/methods")
def update_shipping_method(payload: ShippingMethodPayload,
                           stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    if not payload.id:
        raise HTTPException(status_code=400, detail="Shipping method ID required")
    try:
        method = stores.shipping_methods.update(payload.id, changes_from(payload))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if method is None:
        raise HTTPException(status_code=404, detail="Shipping method not found")
    return {"success": True, "data": method}


@router.delete("/api/shipping/methods")
def delete_shipping_method(id: Optional[str] = Query(None),
                           stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    if not id:
        raise HTTPException(status_code=400, detail="Shipping method ID required")
    if not stores.shipping_methods.delete(id):
        raise HTTPException(status_code=404, detail="Shipping method not found")
    return {"success": True, "message": "Shipping method deleted successfully"}


# ============================================================
# Shipping zones
# ============================================================
@router.get("/api/shipping/zones")
def list_shipping_zones(country: Optional[str] = Query(None), stores: Stores = Depends(get_stores)):
    zones = stores.shipping_zones.list()
    if country:
        zones = [z for z in zones if z.isActive and z.covers(country)]
    return {"success": True, "data": zones, "count": len(zones)}


@router.post("/api/shipping/zones", status_code=201)
def create_shipping_zone(payload: ShippingZonePayload,
                         stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    if not payload.name or not payload.countries or payload.standardRate is None or payload.expressRate is None:
        raise HTTPException(status_code=400, detail="Missing required fields: name, countries, standardRate, expressRate")
    try:
        zone = ShippingZone.parse_obj(changes_from(payload))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    stores.shipping_zones.create(zone)
    logger.info(f"Shipping zone created: {zone.name} ({zone.id})")
    return {"success": True, "data": zone}


@router.put("/api/shipping/zones")
def update_shipping_zone(payload: ShippingZonePayload,
                         stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    if not payload.id:
        raise HTTPException(status_code=400, detail="Missing required field: id")
    try:
        zone = stores.shipping_zones.update(payload.id, changes_from(payload))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if zone is None:
        raise HTTPException(status_code=404, detail="Shipping zone not found")
    return {"success": True, "data": zone}


@router.delete("/api/shipping/zones")
def delete_shipping_zone(id: Optional[str] = Query(None),
                         stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    if not id:
        raise HTTPException(status_code=400, detail="Missing required parameter: id")
    if not stores.shipping_zones.delete(id):
        raise HTTPException(status_code=404, detail="Shipping zone not found")
    return {"success": True, "message": "Shipping zone deleted successfully"}
