from __future__ import annotations

import re
import unicodedata
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Literal

from pydantic import BaseModel, Field, validator


def _new_id() -> str:
    return uuid.uuid4().hex


def slugify(text: str) -> str:
    normalized = unicodedata.normalize("NFKD", (text or "").lower())
    stripped = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    return re.sub(r"[^a-z0-9]+", "-", stripped).strip("-")


class Document(BaseModel):
    """Common fields for everything kept in a repository."""
    id: str = Field(default_factory=_new_id)
    createdAt: datetime = Field(default_factory=datetime.now)
    updatedAt: datetime = Field(default_factory=datetime.now)


class KeywordRecord(Document):
    keyword: str
    variations: List[str] = Field(default_factory=list)
    response: str
    category: str = "general"
    priority: int = 0
    isActive: bool = True

    @validator("keyword")
    def _keyword_not_empty(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("keyword cannot be empty")
        return v

    @validator("variations")
    def _drop_blank_variations(cls, v: List[str]) -> List[str]:
        # a blank phrase would be a substring of every message
        return [s.strip() for s in v if s and s.strip()]

    def phrases(self) -> List[str]:
        return [self.keyword, *self.variations]


class Category(Document):
    name: str
    slug: str = ""
    description: Optional[str] = None
    image: Optional[str] = None
    isActive: bool = True

    @validator("name")
    def _name_not_empty(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @validator("slug", always=True)
    def _default_slug(cls, v: str, values: Dict) -> str:
        return slugify(v or values.get("name") or "")


class Product(Document):
    name: str
    description: str = ""
    price: float = Field(..., ge=0)
    originalPrice: Optional[float] = Field(None, ge=0)
    images: List[str] = Field(default_factory=list)
    category: str
    stock: int = Field(0, ge=0)
    isFeatured: bool = False
    isActive: bool = True
    colors: List[str] = Field(default_factory=list)

    def matches_search(self, term: str) -> bool:
        t = term.lower()
        return t in self.name.lower() or t in self.description.lower()


OrderStatus = Literal["pending", "processing", "confirmed", "shipped", "delivered", "cancelled"]
PaymentStatus = Literal["pending", "paid", "unpaid", "failed", "refunded"]
PaymentMethod = Literal["card", "paypal", "cod"]


class OrderItem(BaseModel):
    productId: str
    name: str
    price: float = Field(..., ge=0)
    quantity: int = Field(..., gt=0)
    image: Optional[str] = None


class ShippingAddress(BaseModel):
    street: str
    city: str
    state: str = ""
    zipCode: str = ""
    country: str


class CustomerInfo(BaseModel):
    name: str
    email: str
    phone: Optional[str] = None


class Order(Document):
    orderNumber: str
    customer: CustomerInfo
    items: List[OrderItem]
    shippingAddress: Optional[ShippingAddress] = None
    subtotal: float = 0.0
    shipping: float = 0.0
    tax: float = 0.0
    total: float
    status: OrderStatus = "pending"
    paymentStatus: PaymentStatus = "pending"
    paymentMethod: PaymentMethod = "cod"

    @validator("items")
    def _items_not_empty(cls, v: List[OrderItem]) -> List[OrderItem]:
        if not v:
            raise ValueError("order must contain at least one item")
        return v


class ChatMessage(Document):
    conversationId: str
    sender: Literal["user", "bot", "admin"]
    message: str
    timestamp: datetime = Field(default_factory=datetime.now)
    isRead: bool = False


class ShippingMethod(Document):
    name: str
    description: str = ""
    type: str
    baseRate: float = Field(..., ge=0)
    freeShippingThreshold: float = Field(0.0, ge=0)
    estimatedDays: int = Field(..., gt=0)
    isActive: bool = True

    def rate_for(self, subtotal: float) -> float:
        if self.freeShippingThreshold and subtotal >= self.freeShippingThreshold:
            return 0.0
        return self.baseRate


class DeliveryDays(BaseModel):
    standard: int = Field(3, gt=0)
    express: int = Field(1, gt=0)


class ShippingZone(Document):
    name: str
    countries: List[str]
    regions: List[str] = Field(default_factory=lambda: ["All"])
    freeShippingThreshold: float = Field(0.0, ge=0)
    standardRate: float = Field(..., ge=0)
    expressRate: float = Field(..., ge=0)
    estimatedDays: DeliveryDays = Field(default_factory=DeliveryDays)
    isActive: bool = True

    @validator("countries")
    def _countries_not_empty(cls, v: List[str]) -> List[str]:
        v = [c.strip() for c in v if c and c.strip()]
        if not v:
            raise ValueError("a shipping zone needs at least one country")
        return v

    def covers(self, country: str) -> bool:
        key = (country or "").strip().lower()
        return any(c.lower() == key for c in self.countries)

    def rate_for(self, subtotal: float, express: bool = False) -> float:
        if self.freeShippingThreshold and subtotal >= self.freeShippingThreshold:
            return 0.0
        return self.expressRate if express else self.standardRate


NotificationType = Literal["info", "warning", "error", "success"]
NotificationPriority = Literal["low", "medium", "high", "urgent"]


class Notification(Document):
    title: str
    message: str
    type: NotificationType = "info"
    priority: NotificationPriority = "medium"
    target: Literal["admins", "customers", "all"] = "admins"
    isActive: bool = True
    scheduledAt: Optional[datetime] = None
    sentAt: Optional[datetime] = None

    def matches_search(self, term: str) -> bool:
        t = term.lower()
        return t in self.title.lower() or t in self.message.lower()


class StoreSettings(Document):
    id: str = "store"
    storeName: str = "Bloomy Your Style"
    storeDescription: str = "Beautiful jewelry and accessories for every occasion"
    storeEmail: str = "info@bloomyourstyle.com"
    storePhone: str = "+92 300 1234567"
    storeAddress: str = "123 Fashion Street, Karachi, Pakistan"
    storeLogo: Optional[str] = "/logo-image.png"
    currency: str = "PKR"
    timezone: str = "Asia/Karachi"
    language: str = "en"
    maintenanceMode: bool = False
    allowGuestCheckout: bool = True
    requireEmailVerification: bool = True
    enableReviews: bool = True
    enableWishlist: bool = True
    enableNotifications: bool = True
    emailNotifications: bool = True
    smsNotifications: bool = False
    pushNotifications: bool = True


class AdminAccount(Document):
    email: str
    name: str = "Admin User"
    role: str = "admin"
    phone: Optional[str] = None
    avatar: Optional[str] = None
    permissions: List[str] = Field(default_factory=list)
    passwordHash: str
    lastLogin: Optional[datetime] = None

    def public(self) -> Dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "phone": self.phone,
            "avatar": self.avatar,
            "permissions": self.permissions,
            "lastLogin": self.lastLogin,
            "createdAt": self.createdAt,
            "updatedAt": self.updatedAt,
        }
