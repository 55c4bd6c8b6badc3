from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from storefront.models.order import OrderStatus, PaymentStatus, PaymentMethod
from storefront.schemas.cart import VariantSelection
from storefront.schemas.common import ORMBase, Pagination


class ShippingAddress(BaseModel):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    street: str
    city: str
    state: Optional[str] = None
    country: str = "US"
    zip_code: str


class BillingAddress(BaseModel):
    name: str
    street: str
    city: str
    state: Optional[str] = None
    country: str = "US"
    zip_code: str


# Output schema for an individual order line item
class OrderItemOut(ORMBase):
    product_id: Optional[int] = None
    name: str
    price: float
    quantity: int
    variant: Optional[VariantSelection] = None


class StatusHistoryOut(ORMBase):
    status: OrderStatus
    date: datetime
    notes: Optional[str] = None
    updated_by: Optional[int] = None


# Output schema representing the full order details
class OrderResponse(ORMBase):
    id: int
    order_number: str
    user_id: Optional[int] = None
    items: List[OrderItemOut]
    subtotal: float
    tax: float
    shipping: float
    total: float
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    stripe_payment_intent_id: Optional[str] = None
    receipt_url: Optional[str] = None
    shipping_address: Optional[dict] = None
    billing_address: Optional[dict] = None
    status: OrderStatus
    tracking_number: Optional[str] = None
    notes: Optional[str] = None
    status_history: List[StatusHistoryOut]
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


# Schema for paginated order lists
class OrdersPage(BaseModel):
    orders: List[OrderResponse]
    pagination: Pagination


# Schema for updating order status
class OrderStatusPatch(BaseModel):
    status: OrderStatus
    notes: Optional[str] = Field(default=None, max_length=500)
    tracking_number: Optional[str] = None


class OrderCancelPayload(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=500)


class StatusCount(BaseModel):
    status: OrderStatus
    count: int


class OrderStats(BaseModel):
    total_orders: int
    total_revenue: float
    orders_by_status: List[StatusCount]
    recent_orders: List[OrderResponse]
