# storefront/services/orders.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from storefront.config import settings
from storefront.errors import Forbidden, InvalidTransition, NotFound, ValidationError
from storefront.models.order import Order, OrderStatus, OrderStatusHistory, PaymentStatus
from storefront.utils.pagination import paginate
from storefront.utils.tokenJWT import Principal

logger = logging.getLogger(__name__)

CANCELLABLE = {OrderStatus.PENDING, OrderStatus.PROCESSING}

# Forward-only lifecycle; cancelled and refunded are terminal
ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.REFUNDED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: set(),
    OrderStatus.REFUNDED: set(),
}

_STATUS_DATE_FIELDS = {
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
    OrderStatus.REFUNDED: "refunded_at",
}


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, set())


def record_status(order: Order, status: OrderStatus, notes: Optional[str] = None,
                  updated_by: Optional[int] = None, now: Optional[datetime] = None) -> None:
    """Set the status, append a history entry and stamp terminal dates."""
    now = now or datetime.now(timezone.utc)
    order.status = status
    order.status_history.append(
        OrderStatusHistory(status=status, date=now, notes=notes, updated_by=updated_by)
    )
    date_field = _STATUS_DATE_FIELDS.get(status)
    if date_field:
        setattr(order, date_field, now)


def _query(db: Session):
    return db.query(Order).options(
        selectinload(Order.items), selectinload(Order.status_history)
    )


def _get(db: Session, order_id: int) -> Order:
    order = _query(db).filter(Order.id == order_id).first()
    if not order:
        raise NotFound("Order not found")
    return order


def _cancel(order: Order, notes: str, principal: Principal) -> None:
    if order.status not in CANCELLABLE:
        raise InvalidTransition("Order cannot be cancelled at this stage")
    record_status(order, OrderStatus.CANCELLED, notes=notes, updated_by=principal.id)


# Customer cancellation; only the owner may cancel
def cancel(db: Session, principal: Principal, order_id: int, notes: Optional[str] = None) -> Order:
    order = _get(db, order_id)
    if order.user_id != principal.id:
        raise Forbidden("Not authorized to cancel this order")
    _cancel(order, notes or "Cancelled by customer", principal)
    db.commit()
    db.refresh(order)
    return order


def admin_cancel(db: Session, principal: Principal, order_id: int, notes: Optional[str] = None) -> Order:
    if not principal.is_admin:
        raise Forbidden("Admin access required")
    order = _get(db, order_id)
    _cancel(order, notes or "Cancelled by admin", principal)
    db.commit()
    db.refresh(order)
    return order


def set_status(db: Session, principal: Principal, order_id: int, new_status,
               notes: Optional[str] = None, tracking_number: Optional[str] = None) -> Order:
    if not principal.is_admin:
        raise Forbidden("Admin access required")
    try:
        new_status = OrderStatus(new_status)
    except ValueError:
        raise ValidationError(f"Unknown order status: {new_status}")

    order = _get(db, order_id)
    old_status = order.status
    if settings.STRICT_ORDER_TRANSITIONS and not can_transition(old_status, new_status):
        raise InvalidTransition(
            f"Cannot change status from {old_status.value} to {new_status.value}"
        )

    record_status(order, new_status, notes=notes, updated_by=principal.id)
    if tracking_number:
        order.tracking_number = tracking_number
    if new_status == OrderStatus.REFUNDED and order.payment_status == PaymentStatus.PAID:
        order.payment_status = PaymentStatus.REFUNDED

    db.commit()
    db.refresh(order)
    logger.info("Order %s status %s -> %s by user %s",
                order.order_number, old_status.value, new_status.value, principal.id)
    return order


def list_for_user(db: Session, principal: Principal, page: int = 1, limit: int = 10):
    query = _query(db).filter(Order.user_id == principal.id).order_by(Order.created_at.desc(), Order.id.desc())
    return paginate(query, page, limit)


def get_for_user(db: Session, principal: Principal, order_id: int) -> Order:
    order = _get(db, order_id)
    if order.user_id != principal.id and not principal.is_admin:
        raise Forbidden("Not authorized to access this order")
    return order


def list_all(db: Session, page: int = 1, limit: int = 10,
             status: Optional[OrderStatus] = None, payment_status: Optional[PaymentStatus] = None):
    query = _query(db)
    if status:
        query = query.filter(Order.status == status)
    if payment_status:
        query = query.filter(Order.payment_status == payment_status)
    query = query.order_by(Order.created_at.desc(), Order.id.desc())
    return paginate(query, page, limit)


def revenue(db: Session, since: Optional[datetime] = None) -> float:
    query = db.query(func.coalesce(func.sum(Order.total), 0.0)).filter(
        Order.payment_status == PaymentStatus.PAID
    )
    if since is not None:
        query = query.filter(Order.created_at >= since)
    return round(float(query.scalar() or 0.0), 2)


def counts_by_status(db: Session, user_id: Optional[int] = None):
    query = db.query(Order.status, func.count(Order.id))
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    return [
        {"status": status, "count": count}
        for status, count in query.group_by(Order.status).all()
    ]


def recent(db: Session, limit: int = 5):
    return _query(db).order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()


def stats(db: Session) -> dict:
    return {
        "total_orders": db.query(Order).count(),
        "total_revenue": revenue(db),
        "orders_by_status": counts_by_status(db),
        "recent_orders": recent(db, 5),
    }


def days_ago(days: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)
