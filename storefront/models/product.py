# storefront/models/product.py
import enum

from sqlalchemy import (
    Column, Integer, String, Float, Boolean, DateTime, Enum, ForeignKey,
    CheckConstraint, UniqueConstraint, func
)
from sqlalchemy.orm import relationship
from storefront.database import Base


class ProductCategory(str, enum.Enum):
    COURSE = "course"
    MERCH = "merch"
    EBOOK = "ebook"
    CONSULTATION = "consultation"


# Categories delivered digitally never run out of stock
DIGITAL_CATEGORIES = {ProductCategory.COURSE, ProductCategory.EBOOK, ProductCategory.CONSULTATION}


# Model Product
# Single catalog entry. Stock is tracked only for merch; digital products
# (courses, ebooks, consultations) are always available.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    slug = Column(String, unique=True, nullable=False, index=True)
    description = Column(String(2000), nullable=False)

    price = Column(Float, CheckConstraint("price >= 0"), nullable=False)
    compare_price = Column(Float, CheckConstraint("compare_price >= 0"), nullable=True)

    category = Column(Enum(ProductCategory), nullable=False, index=True)
    subcategory = Column(String, nullable=True)

    stock = Column(Integer, CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
                   nullable=False, default=0)
    sku = Column(String, unique=True, nullable=True)
    sold = Column(Integer, nullable=False, default=0)

    thumbnail_url = Column(String, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    is_featured = Column(Boolean, nullable=False, default=False)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    variants = relationship(
        "ProductVariant", back_populates="product",
        cascade="all, delete-orphan", order_by="ProductVariant.id"
    )

    @property
    def is_available(self) -> bool:
        if self.category in DIGITAL_CATEGORIES:
            return True
        return (self.stock or 0) > 0

    @property
    def discount_percentage(self) -> int:
        if not self.compare_price or self.compare_price <= self.price:
            return 0
        return round((self.compare_price - self.price) / self.compare_price * 100)

    def find_variant(self, name, value):
        for variant in self.variants:
            if variant.name == name and variant.value == value:
                return variant
        return None


# One option of a named product dimension, e.g. Size=XL, with its own price and stock
class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String, nullable=False)   # e.g. "Size"
    value = Column(String, nullable=False)  # e.g. "XL"
    price = Column(Float, CheckConstraint("price >= 0"), nullable=False)
    stock = Column(Integer, CheckConstraint("stock >= 0", name="ck_variants_stock_non_negative"),
                   nullable=False, default=0)
    sku = Column(String, nullable=True)

    product = relationship("Product", back_populates="variants")

    __table_args__ = (
        UniqueConstraint("product_id", "name", "value", name="uq_variant_product_name_value"),
    )
