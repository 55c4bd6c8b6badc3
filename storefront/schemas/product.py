# storefront/schemas/product.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from storefront.models.product import ProductCategory
from storefront.schemas.common import ORMBase, Pagination


class VariantOption(ORMBase):
    value: str
    price: float = Field(ge=0)
    stock: int = Field(default=0, ge=0)
    sku: Optional[str] = None


# A named product dimension with its options, e.g. Size -> [S, M, L]
class VariantGroup(BaseModel):
    name: str
    options: List[VariantOption]


# Shared base attributes for product entities
class ProductBase(ORMBase):
    name: str = Field(max_length=100)
    description: str = Field(max_length=2000)
    price: float = Field(ge=0)
    compare_price: Optional[float] = Field(default=None, ge=0)
    category: ProductCategory
    subcategory: Optional[str] = None
    stock: int = Field(default=0, ge=0)
    sku: Optional[str] = None
    thumbnail_url: Optional[str] = None
    is_active: bool = True
    is_featured: bool = False


# Schema for creating a new product
class ProductCreate(ProductBase):
    variants: List[VariantGroup] = []


REQUIRED_PRODUCT_FIELDS = ("name", "description", "price", "category", "stock", "is_active", "is_featured")


# Schema for partial product updates
class ProductEditRequest(ORMBase):
    """Schema for PUT requests - all fields optional."""
    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    price: Optional[float] = Field(None, ge=0)
    compare_price: Optional[float] = Field(None, ge=0)
    category: Optional[ProductCategory] = None
    subcategory: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    sku: Optional[str] = None
    thumbnail_url: Optional[str] = None
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    # Replaces all variants when provided
    variants: Optional[List[VariantGroup]] = None

    @model_validator(mode="after")
    def _reject_null_required(self):
        # Omitting a field leaves it unchanged; null cannot clear a NOT NULL column
        nulls = [
            name for name in REQUIRED_PRODUCT_FIELDS
            if name in self.model_fields_set and getattr(self, name) is None
        ]
        if nulls:
            raise ValueError(f"Fields cannot be null: {', '.join(nulls)}")
        return self


# Full product representation including ID
class ProductOut(ProductBase):
    id: int
    slug: str
    sold: int
    is_available: bool
    discount_percentage: int
    variants: List[VariantGroup] = []
    created_at: Optional[datetime] = None


# Paginated response for product listings
class ProductListPage(BaseModel):
    products: List[ProductOut]
    pagination: Pagination


class CategoryCount(BaseModel):
    category: ProductCategory
    count: int
