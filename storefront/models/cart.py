# storefront/models/cart.py
from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Float, CheckConstraint, func
from sqlalchemy.orm import relationship
from storefront.database import Base

# Represents the user's shopping cart, at most one per user
class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, index=True, nullable=False)

    # Derived from items; recomputed by every cart mutation
    total_items = Column(Integer, nullable=False, default=0)
    total_price = Column(Float, nullable=False, default=0.0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship(
        "CartItem", back_populates="cart",
        cascade="all, delete-orphan", order_by="CartItem.id"
    )


# A single line (product, optional variant, quantity) within a cart
class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    quantity = Column(Integer, CheckConstraint("quantity >= 1"), nullable=False, default=1)
    price = Column(Float, nullable=False) # Unit price at the moment of addition

    variant_name = Column(String, nullable=True)
    variant_value = Column(String, nullable=True)

    added_at = Column(DateTime(timezone=True), server_default=func.now())

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product")

    @property
    def variant(self):
        if self.variant_name is None and self.variant_value is None:
            return None
        return {"name": self.variant_name, "value": self.variant_value}
