# storefront/schemas/admin.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from storefront.schemas.common import ORMBase, Pagination
from storefront.schemas.order import OrderResponse, StatusCount
from storefront.schemas.product import ProductOut
from storefront.schemas.user import UserResponse


class DashboardOverview(BaseModel):
    total_users: int
    total_products: int
    total_orders: int
    active_users: int
    total_revenue: float
    monthly_revenue: float
    weekly_revenue: float
    new_users_this_month: int
    new_orders_this_month: int


class DailyRevenue(BaseModel):
    date: str
    revenue: float
    orders: int


class Dashboard(BaseModel):
    overview: DashboardOverview
    orders_by_status: List[StatusCount]
    recent_orders: List[OrderResponse]
    top_products: List[ProductOut]
    low_stock_products: List[ProductOut]
    daily_revenue: List[DailyRevenue]


class UsersPage(BaseModel):
    users: List[UserResponse]
    pagination: Pagination


class ReconciliationOut(ORMBase):
    id: int
    order_id: int
    product_id: Optional[int] = None
    variant_name: Optional[str] = None
    variant_value: Optional[str] = None
    requested: int
    available: int
    resolved: bool
    resolution_notes: Optional[str] = None
    resolved_by: Optional[int] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ReconciliationPage(BaseModel):
    entries: List[ReconciliationOut]
    pagination: Pagination


class ResolvePayload(BaseModel):
    notes: Optional[str] = None
