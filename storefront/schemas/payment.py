from pydantic import BaseModel
from typing import List, Optional

from storefront.schemas.cart import VariantSelection
from storefront.schemas.order import ShippingAddress, BillingAddress, OrderResponse


# Billing details are collected when the payment is confirmed
class CreateIntentPayload(BaseModel):
    shipping_address: Optional[ShippingAddress] = None


class ConfirmPaymentPayload(BaseModel):
    payment_intent_id: str
    shipping_address: Optional[ShippingAddress] = None
    billing_address: Optional[BillingAddress] = None


class SummaryItem(BaseModel):
    name: str
    quantity: int
    price: float
    variant: Optional[VariantSelection] = None


class OrderSummary(BaseModel):
    subtotal: float
    tax: float
    shipping: float
    total: float
    items: List[SummaryItem]


# Response for payment intent creation
class PaymentIntentOut(BaseModel):
    client_secret: Optional[str]
    payment_intent_id: str
    amount: float
    currency: str
    order_summary: OrderSummary


class PaymentConfirmation(BaseModel):
    order: OrderResponse
    message: str


class SavePaymentMethodPayload(BaseModel):
    payment_method_id: str


class PaymentMethodOut(BaseModel):
    id: str
    brand: Optional[str] = None
    last4: Optional[str] = None
    exp_month: Optional[int] = None
    exp_year: Optional[int] = None


class PaymentMethodsOut(BaseModel):
    payment_methods: List[PaymentMethodOut]
