# storefront/routes/orders.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.models.order import OrderStatus, PaymentStatus
from storefront.schemas.common import ApiResponse
from storefront.schemas.order import (
    OrderResponse, OrdersPage, OrderStatusPatch, OrderCancelPayload, OrderStats
)
from storefront.services import orders as order_service
from storefront.utils.audit import write_log, client_ip
from storefront.utils.tokenJWT import Principal, get_current_principal, role_required

router = APIRouter(prefix="/orders", tags=["Orders"])


def _page(rows, pagination) -> ApiResponse[OrdersPage]:
    return ApiResponse(data=OrdersPage(
        orders=[OrderResponse.model_validate(o) for o in rows],
        pagination=pagination,
    ))


# List the caller's orders, newest first
@router.get("", response_model=ApiResponse[OrdersPage])
def list_my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rows, pagination = order_service.list_for_user(db, principal, page, limit)
    return _page(rows, pagination)


# Admin: list all orders with optional status filters
@router.get("/admin/all", response_model=ApiResponse[OrdersPage])
def list_all_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[OrderStatus] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    db: Session = Depends(get_db),
    principal: Principal = Depends(role_required("admin")),
):
    rows, pagination = order_service.list_all(db, page, limit, status, payment_status)
    return _page(rows, pagination)


@router.get("/admin/stats", response_model=ApiResponse[OrderStats])
def get_order_stats(
    db: Session = Depends(get_db),
    principal: Principal = Depends(role_required("admin")),
):
    stats = order_service.stats(db)
    stats["recent_orders"] = [OrderResponse.model_validate(o) for o in stats["recent_orders"]]
    return ApiResponse(data=OrderStats(**stats))


# Get details of a specific order (owner or admin)
@router.get("/{order_id}", response_model=ApiResponse[OrderResponse])
def get_order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    order = order_service.get_for_user(db, principal, order_id)
    return ApiResponse(data=OrderResponse.model_validate(order))


@router.put("/{order_id}/cancel", response_model=ApiResponse[OrderResponse])
def cancel_order(
    order_id: int,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    order = order_service.cancel(db, principal, order_id)
    write_log(db, user_id=principal.id, action="ORDER_CANCEL", resource="orders", status="SUCCESS",
              ip=client_ip(request), meta={"order_id": order.id, "order_number": order.order_number})
    return ApiResponse(data=OrderResponse.model_validate(order))


@router.put("/{order_id}/admin-cancel", response_model=ApiResponse[OrderResponse])
def admin_cancel_order(
    order_id: int,
    request: Request,
    payload: Optional[OrderCancelPayload] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(role_required("admin")),
):
    notes = payload.notes if payload else None
    order = order_service.admin_cancel(db, principal, order_id, notes)
    write_log(db, user_id=principal.id, action="ORDER_ADMIN_CANCEL", resource="orders", status="SUCCESS",
              ip=client_ip(request), meta={"order_id": order.id, "notes": notes})
    return ApiResponse(data=OrderResponse.model_validate(order))


# Admin status transition, validated against the order lifecycle
@router.put("/{order_id}/status", response_model=ApiResponse[OrderResponse])
def update_order_status(
    order_id: int,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(role_required("admin")),
):
    order = order_service.set_status(
        db, principal, order_id, payload.status, payload.notes, payload.tracking_number
    )
    write_log(db, user_id=principal.id, action="ORDER_STATUS_CHANGE", resource="orders", status="SUCCESS",
              ip=client_ip(request), meta={"order_id": order.id, "new": payload.status.value})
    return ApiResponse(data=OrderResponse.model_validate(order))
