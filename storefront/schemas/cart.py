from pydantic import BaseModel, Field
from typing import List, Optional

from storefront.models.product import ProductCategory
from storefront.schemas.common import ORMBase


# Selected product option, e.g. {"name": "Size", "value": "XL"}
class VariantSelection(BaseModel):
    name: str
    value: str


# Request schema for adding an item to the cart
class CartAddItem(BaseModel):
    product_id: int
    quantity: int = Field(default=1, ge=1)
    variant: Optional[VariantSelection] = None


# Request schema for updating cart item quantity
class CartUpdateItem(BaseModel):
    quantity: int = Field(ge=1)


class CartProductOut(ORMBase):
    id: int
    name: str
    slug: str
    price: float
    category: ProductCategory
    thumbnail_url: Optional[str] = None
    is_available: bool


# Response schema for a single cart line item
class CartItemOut(ORMBase):
    id: int
    product_id: int
    product: Optional[CartProductOut] = None
    quantity: int
    price: float
    variant: Optional[VariantSelection] = None


# Response schema for the entire cart
class CartOut(ORMBase):
    id: int
    items: List[CartItemOut]
    total_items: int
    total_price: float


class CartSummary(BaseModel):
    total_items: int
    total_price: float
    item_count: int
