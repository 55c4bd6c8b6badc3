# storefront/routes/admin.py
from datetime import datetime, timezone
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.database import get_db
from storefront.errors import NotFound, ValidationError
from storefront.models.cart import Cart
from storefront.models.order import Order, PaymentStatus
from storefront.models.product import Product, ProductCategory
from storefront.models.reconciliation import StockReconciliation
from storefront.models.users import User
from storefront.routes.products import product_to_out
from storefront.schemas import admin as admin_schemas
from storefront.schemas.common import ApiResponse, Message
from storefront.schemas.order import OrderResponse
from storefront.schemas.user import RoleUpdate, UserResponse
from storefront.services import orders as order_service
from storefront.utils.audit import write_log, client_ip
from storefront.utils.pagination import paginate
from storefront.utils.tokenJWT import Principal, role_required

router = APIRouter(prefix="/admin", tags=["Admin"])

admin_only = role_required("admin")


# === Dashboard ===

def _daily_revenue(db: Session, since: datetime):
    day = func.date(Order.created_at)
    rows = (
        db.query(day.label("date"), func.sum(Order.total).label("revenue"), func.count(Order.id).label("orders"))
        .filter(Order.payment_status == PaymentStatus.PAID, Order.created_at >= since)
        .group_by(day)
        .order_by(day)
        .all()
    )
    return [
        admin_schemas.DailyRevenue(date=str(r.date), revenue=round(float(r.revenue or 0.0), 2), orders=r.orders)
        for r in rows
    ]


@router.get("/dashboard", response_model=ApiResponse[admin_schemas.Dashboard])
def get_dashboard(
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    thirty_days_ago = order_service.days_ago(30)
    seven_days_ago = order_service.days_ago(7)

    overview = admin_schemas.DashboardOverview(
        total_users=db.query(User).count(),
        total_products=db.query(Product).count(),
        total_orders=db.query(Order).count(),
        active_users=db.query(User).filter(User.last_login >= thirty_days_ago).count(),
        total_revenue=order_service.revenue(db),
        monthly_revenue=order_service.revenue(db, since=thirty_days_ago),
        weekly_revenue=order_service.revenue(db, since=seven_days_ago),
        new_users_this_month=db.query(User).filter(User.created_at >= thirty_days_ago).count(),
        new_orders_this_month=db.query(Order).filter(Order.created_at >= thirty_days_ago).count(),
    )

    top_products = (
        db.query(Product).filter(Product.sold > 0)
        .order_by(Product.sold.desc(), Product.id).limit(10).all()
    )
    low_stock = (
        db.query(Product)
        .filter(
            Product.category == ProductCategory.MERCH,
            Product.stock < settings.LOW_STOCK_THRESHOLD,
            Product.is_active == True,  # noqa: E712
        )
        .order_by(Product.stock, Product.id).limit(10).all()
    )

    return ApiResponse(data=admin_schemas.Dashboard(
        overview=overview,
        orders_by_status=order_service.counts_by_status(db),
        recent_orders=[OrderResponse.model_validate(o) for o in order_service.recent(db, 10)],
        top_products=[product_to_out(p) for p in top_products],
        low_stock_products=[product_to_out(p) for p in low_stock],
        daily_revenue=_daily_revenue(db, thirty_days_ago),
    ))


# === Users ===

@router.get("/users", response_model=ApiResponse[admin_schemas.UsersPage])
def get_users(
    search: Optional[str] = Query(None, description="Search by name or email"),
    role: Optional[Literal["user", "admin"]] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    query = db.query(User)
    if search:
        like = f"%{search}%"
        query = query.filter(or_(User.name.ilike(like), User.email.ilike(like)))
    if role:
        query = query.filter(User.role == role)
    query = query.order_by(User.created_at.desc(), User.id.desc())

    rows, pagination = paginate(query, page, limit)
    return ApiResponse(data=admin_schemas.UsersPage(
        users=[UserResponse.model_validate(u) for u in rows], pagination=pagination
    ))


@router.put("/users/{user_id}/role", response_model=ApiResponse[UserResponse])
def update_user_role(
    user_id: int,
    payload: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    # Prevent admin from changing their own role
    if user_id == principal.id:
        raise ValidationError("Cannot change your own role")

    user = db.get(User, user_id)
    if not user:
        raise NotFound("User not found")

    old_role = user.role
    user.role = payload.role
    db.commit()
    db.refresh(user)

    write_log(db, user_id=principal.id, action="USER_ROLE_CHANGE", resource="users", status="SUCCESS",
              ip=client_ip(request), meta={"target_id": user.id, "old": old_role, "new": user.role})
    return ApiResponse(data=UserResponse.model_validate(user))


@router.delete("/users/{user_id}", response_model=ApiResponse[Message])
def delete_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    # Prevent self-deletion
    if user_id == principal.id:
        raise ValidationError("Cannot delete your own account")

    user = db.get(User, user_id)
    if not user:
        raise NotFound("User not found")

    # Orders keep their history but lose the owner; the cart and its lines go with the user
    db.query(Order).filter(Order.user_id == user_id).update(
        {Order.user_id: None}, synchronize_session=False
    )
    cart = db.query(Cart).filter(Cart.user_id == user_id).first()
    if cart:
        db.delete(cart)
        db.flush()
    db.delete(user)
    db.commit()

    write_log(db, user_id=principal.id, action="USER_DELETE", resource="users", status="SUCCESS",
              ip=client_ip(request), meta={"target_id": user_id})
    return ApiResponse(data=Message(message="User deleted successfully"))


# === Stock reconciliation ===

@router.get("/reconciliation", response_model=ApiResponse[admin_schemas.ReconciliationPage])
def list_reconciliation(
    resolved: Optional[bool] = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    query = db.query(StockReconciliation)
    if resolved is not None:
        query = query.filter(StockReconciliation.resolved == resolved)
    query = query.order_by(StockReconciliation.created_at.desc(), StockReconciliation.id.desc())

    rows, pagination = paginate(query, page, limit)
    return ApiResponse(data=admin_schemas.ReconciliationPage(
        entries=[admin_schemas.ReconciliationOut.model_validate(r) for r in rows],
        pagination=pagination,
    ))


@router.put("/reconciliation/{entry_id}/resolve", response_model=ApiResponse[admin_schemas.ReconciliationOut])
def resolve_reconciliation(
    entry_id: int,
    request: Request,
    payload: Optional[admin_schemas.ResolvePayload] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    entry = db.get(StockReconciliation, entry_id)
    if not entry:
        raise NotFound("Reconciliation entry not found")
    if entry.resolved:
        raise ValidationError("Reconciliation entry already resolved")

    entry.resolved = True
    entry.resolution_notes = payload.notes if payload else None
    entry.resolved_by = principal.id
    entry.resolved_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(entry)

    write_log(db, user_id=principal.id, action="STOCK_RECONCILE", resource="products", status="SUCCESS",
              ip=client_ip(request), meta={"entry_id": entry.id, "order_id": entry.order_id})
    return ApiResponse(data=admin_schemas.ReconciliationOut.model_validate(entry))
