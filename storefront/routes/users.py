# storefront/routes/users.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.models.order import Order, PaymentStatus
from storefront.models.users import User
from storefront.schemas.common import ApiResponse
from storefront.schemas.order import OrdersPage, OrderResponse
from storefront.schemas.user import UserResponse, ProfileUpdate, UserStats
from storefront.services import orders as order_service
from storefront.utils.tokenJWT import Principal, get_current_user

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/profile", response_model=ApiResponse[UserResponse])
def get_profile(current_user: User = Depends(get_current_user)):
    return ApiResponse(data=UserResponse.model_validate(current_user))


@router.put("/profile", response_model=ApiResponse[UserResponse])
def update_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(current_user, field, value)
    db.commit()
    db.refresh(current_user)
    return ApiResponse(data=UserResponse.model_validate(current_user))


@router.get("/orders", response_model=ApiResponse[OrdersPage])
def get_user_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows, pagination = order_service.list_for_user(db, Principal.from_user(current_user), page, limit)
    return ApiResponse(data=OrdersPage(
        orders=[OrderResponse.model_validate(o) for o in rows], pagination=pagination
    ))


# Order count and lifetime spend over paid orders
@router.get("/stats", response_model=ApiResponse[UserStats])
def get_user_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    total_orders = db.query(Order).filter(Order.user_id == current_user.id).count()
    total_spent = db.query(func.coalesce(func.sum(Order.total), 0.0)).filter(
        Order.user_id == current_user.id,
        Order.payment_status == PaymentStatus.PAID,
    ).scalar()
    by_status = {
        row["status"].value: row["count"]
        for row in order_service.counts_by_status(db, user_id=current_user.id)
    }
    return ApiResponse(data=UserStats(
        total_orders=total_orders,
        total_spent=round(float(total_spent or 0.0), 2),
        orders_by_status=by_status,
    ))
