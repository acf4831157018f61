from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List

from .auth import new_admin
from .config import Config
from .models import (
    Category,
    CustomerInfo,
    KeywordRecord,
    Notification,
    Order,
    OrderItem,
    Product,
    ShippingAddress,
    ShippingMethod,
    ShippingZone,
    StoreSettings,
)
from .notifications import derive_notifications
from .repository import Stores

logger = logging.getLogger(__name__)


def default_keywords() -> List[KeywordRecord]:
    rows = [
        ("price", ["cost", "expensive", "cheap", "discount", "pricing", "how much", "price range"],
         "Our prices vary depending on the product. You can see detailed pricing on each product page. "
         "We also offer free shipping on orders over RS 1000!", "pricing", 1),
        ("shipping", ["delivery", "free shipping", "shipping cost", "how long", "delivery time"],
         "We offer free shipping on orders over RS 1000! For orders under this amount, shipping costs are "
         "calculated at checkout. Standard delivery takes 3-5 business days.", "shipping", 1),
        ("return", ["refund", "exchange", "return policy", "can i return", "return item"],
         "We offer a 30-day return policy for all items. Items must be in original condition with tags "
         "attached. Please contact us for return instructions.", "returns", 1),
        ("product", ["jewelry", "ring", "necklace", "earring", "bracelet", "what do you have", "collection"],
         "We have a beautiful collection of jewelry including rings, necklaces, earrings, and bracelets. "
         "You can browse our products in the Products section.", "products", 1),
        ("contact", ["email", "phone", "support", "help", "contact us", "reach us"],
         "You can reach us through this chat, or you can email us at support@bloomyourstyle.com. "
         "We're here to help!", "contact", 1),
        ("size", ["sizing", "size guide", "what size", "measurement", "fit"],
         "We provide detailed size guides for all our jewelry. You can find size information on each "
         "product page or contact us for personalized sizing assistance.", "sizing", 2),
        ("material", ["gold", "silver", "diamond", "pearl", "what is it made of"],
         "Our jewelry is made from high-quality materials including gold, silver, diamonds, and pearls. "
         "Each product page lists the specific materials used.", "materials", 2),
        ("order", ["place order", "buy", "purchase", "checkout", "how to order"],
         "To place an order, simply add items to your cart and proceed to checkout. You can pay securely "
         "with your preferred payment method.", "ordering", 1),
        ("hello", ["hi there", "hey", "good morning", "good evening"],
         "Hello! How can I help you today?", "greeting", 0),
    ]
    return [
        KeywordRecord(id=str(i), keyword=k, variations=v, response=r, category=c, priority=p)
        for i, (k, v, r, c, p) in enumerate(rows, start=1)
    ]


def default_categories() -> List[Category]:
    rows = [
        ("Bracelets", "/image-6.jpg", "Beautiful bracelets for every occasion"),
        ("Earrings", "/image-5.jpg", "Elegant earrings to complete your look"),
        ("Necklaces", "/image-4.jpg", "Stunning necklaces for special moments"),
        ("Rings", "/image-2.jpg", "Rings for engagements, gifts and everyday wear"),
        ("Keychains", "/image-3.jpg", "Cute keychains and accessories"),
    ]
    return [
        Category(id=str(i), name=n, image=img, description=d)
        for i, (n, img, d) in enumerate(rows, start=1)
    ]


def default_products() -> List[Product]:
    return [
        Product(id="1", name="Gold Bracelet", description="Beautiful gold bracelet with intricate design",
                price=1500, originalPrice=2000, images=["/image-1.png"], category="bracelets", stock=25,
                isFeatured=True, colors=["Gold", "Rose Gold"]),
        Product(id="2", name="Silver Earrings", description="Elegant silver earrings perfect for any occasion",
                price=800, images=["/image-2.png"], category="earrings", stock=15,
                colors=["Silver", "White Gold"]),
        Product(id="3", name="Pearl Necklace", description="Classic pearl necklace for special events",
                price=2500, images=["/image-3.jpg"], category="necklaces", stock=8,
                isFeatured=True, colors=["White", "Cream"]),
        Product(id="4", name="Diamond Ring", description="Stunning diamond ring with vintage design",
                price=5000, originalPrice=6000, images=["/image-4.jpg"], category="rings", stock=3,
                isFeatured=True, colors=["White Gold", "Platinum"]),
    ]


def default_orders(now: datetime | None = None) -> List[Order]:
    now = now or datetime.now()
    return [
        Order(
            id="1",
            orderNumber="ORD-001",
            customer=CustomerInfo(name="John Doe", email="john@example.com", phone="+1234567890"),
            items=[OrderItem(productId="1", name="Gold Bracelet", price=1500, quantity=1, image="/image-1.png")],
            shippingAddress=ShippingAddress(street="123 Main St", city="New York", state="NY",
                                            zipCode="10001", country="USA"),
            subtotal=1500, shipping=0, tax=0, total=1500,
            status="pending", paymentStatus="pending", paymentMethod="card",
            createdAt=now, updatedAt=now,
        ),
        Order(
            id="2",
            orderNumber="ORD-002",
            customer=CustomerInfo(name="Jane Smith", email="jane@example.com", phone="+1234567891"),
            items=[OrderItem(productId="2", name="Silver Earrings", price=800, quantity=2, image="/image-2.png")],
            shippingAddress=ShippingAddress(street="456 Oak Ave", city="Los Angeles", state="CA",
                                            zipCode="90210", country="USA"),
            subtotal=1600, shipping=0, tax=0, total=1600,
            status="shipped", paymentStatus="paid", paymentMethod="paypal",
            createdAt=now - timedelta(days=1), updatedAt=now,
        ),
    ]


def default_shipping_methods() -> List[ShippingMethod]:
    return [
        ShippingMethod(id="1", name="Standard Shipping", description="Regular delivery within estimated timeframe",
                       type="standard", baseRate=200, freeShippingThreshold=5000, estimatedDays=3),
        ShippingMethod(id="2", name="Express Shipping", description="Fast delivery for urgent orders",
                       type="express", baseRate=500, freeShippingThreshold=10000, estimatedDays=1),
        ShippingMethod(id="3", name="Overnight Delivery", description="Next day delivery for premium orders",
                       type="overnight", baseRate=1000, freeShippingThreshold=20000, estimatedDays=1,
                       isActive=False),
    ]


def default_shipping_zones() -> List[ShippingZone]:
    return [
        ShippingZone(id="1", name="Domestic (Pakistan)", countries=["Pakistan"], regions=["All"],
                     freeShippingThreshold=5000, standardRate=200, expressRate=500,
                     estimatedDays={"standard": 3, "express": 1}),
        ShippingZone(id="2", name="International",
                     countries=["United States", "United Kingdom", "Canada", "Australia"],
                     regions=["North America", "Europe", "Oceania"],
                     freeShippingThreshold=15000, standardRate=1500, expressRate=3000,
                     estimatedDays={"standard": 7, "express": 3}),
    ]


def default_notifications(orders: List[Order], products: List[Product]) -> List[Notification]:
    welcome = Notification(
        title="Welcome to Our Store!",
        message="Thank you for joining us. Enjoy 10% off your first order with code WELCOME10",
        type="success",
        priority="low",
        target="customers",
        scheduledAt=datetime.now() + timedelta(days=1),
    )
    return derive_notifications(orders, products) + [welcome]


def seed_stores(stores: Stores, config: Config, force: bool = False) -> bool:
    """Fill empty stores with demo data. ``force`` resets everything except admins.

    Returns True when data was written.
    """
    if not force and stores.keywords.count() > 0:
        return False
    stores.keywords.replace_all(default_keywords())
    stores.categories.replace_all(default_categories())
    products, orders = default_products(), default_orders()
    stores.products.replace_all(products)
    stores.orders.replace_all(orders)
    stores.shipping_methods.replace_all(default_shipping_methods())
    stores.shipping_zones.replace_all(default_shipping_zones())
    stores.notifications.replace_all(default_notifications(orders, products))
    stores.settings.replace_all([StoreSettings(currency=config.currency)])
    stores.messages.replace_all([])
    logger.info(f"Seeded {stores.backend} stores")
    return True


def ensure_admin(stores: Stores, config: Config) -> None:
    if stores.admins.count() > 0:
        return
    stores.admins.create(new_admin(config.admin_email, config.admin_password))
    logger.info(f"Created admin account {config.admin_email}")
