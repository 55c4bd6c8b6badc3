# storefront/models/order.py
import enum

from sqlalchemy import (
    Column, Integer, String, Float, ForeignKey, DateTime, Enum, JSON,
    CheckConstraint, func
)
from sqlalchemy.orm import relationship, validates
from storefront.database import Base


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    CARD = "card"


FINANCIAL_FIELDS = ("subtotal", "tax", "shipping", "total")


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True)

    # Amounts charged; stored as-is, never recomputed from items
    subtotal = Column(Float, CheckConstraint("subtotal >= 0"), nullable=False)
    tax = Column(Float, CheckConstraint("tax >= 0"), nullable=False, default=0.0)
    shipping = Column(Float, CheckConstraint("shipping >= 0"), nullable=False, default=0.0)
    total = Column(Float, CheckConstraint("total >= 0"), nullable=False)

    payment_method = Column(Enum(PaymentMethod), nullable=False, default=PaymentMethod.CARD)
    payment_status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)

    # Stripe payment details
    stripe_payment_intent_id = Column(String, unique=True, nullable=True, index=True)
    stripe_customer_id = Column(String, nullable=True)
    receipt_url = Column(String, nullable=True)

    shipping_address = Column(JSON, nullable=True)
    billing_address = Column(JSON, nullable=True)

    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING, index=True)
    tracking_number = Column(String, nullable=True)
    notes = Column(String, nullable=True)

    delivered_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan",
                         order_by="OrderItem.id")
    status_history = relationship("OrderStatusHistory", back_populates="order",
                                  cascade="all, delete-orphan", order_by="OrderStatusHistory.id")
    user = relationship("User")

    @validates(*FINANCIAL_FIELDS)
    def _freeze_paid_amounts(self, key, value):
        current = getattr(self, key)
        if self.payment_status == PaymentStatus.PAID and current is not None and current != value:
            raise ValueError(f"Cannot change {key} of a paid order")
        return value


# Line item with a copy of the product name and price at purchase time
class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    name = Column(String, nullable=False)
    price = Column(Float, nullable=False)
    quantity = Column(Integer, CheckConstraint("quantity >= 1"), nullable=False)
    variant_name = Column(String, nullable=True)
    variant_value = Column(String, nullable=True)

    order = relationship("Order", back_populates="items")

    @property
    def variant(self):
        if self.variant_name is None and self.variant_value is None:
            return None
        return {"name": self.variant_name, "value": self.variant_value}


# Append-only audit trail of status changes
class OrderStatusHistory(Base):
    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    status = Column(Enum(OrderStatus), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    notes = Column(String, nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    order = relationship("Order", back_populates="status_history")


# Daily order counter; one row per calendar day, incremented atomically
class OrderSequence(Base):
    __tablename__ = "order_sequences"

    day = Column(String(8), primary_key=True) # YYYYMMDD
    value = Column(Integer, nullable=False, default=0)
