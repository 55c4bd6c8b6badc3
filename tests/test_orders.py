import itertools

import pytest

from storefront.config import settings
from storefront.errors import Forbidden, InvalidTransition, ValidationError
from storefront.models.order import Order, OrderStatus, PaymentStatus
from storefront.services import orders as order_service
from storefront.utils.tokenJWT import Principal

_numbers = itertools.count(1)


@pytest.fixture()
def make_order(db):
    def _make(user, status=OrderStatus.PROCESSING, total=64.0):
        order = Order(
            order_number=f"ORD20240307{next(_numbers):04d}",
            user_id=user.id,
            subtotal=50.0,
            tax=4.0,
            shipping=10.0,
            total=total,
            payment_status=PaymentStatus.PAID,
        )
        order_service.record_status(order, status, notes="seeded", updated_by=user.id)
        db.add(order)
        db.commit()
        db.refresh(order)
        return order
    return _make


class TestTransitionTable:
    @pytest.mark.parametrize("current,new", [
        (OrderStatus.PENDING, OrderStatus.PROCESSING),
        (OrderStatus.PROCESSING, OrderStatus.SHIPPED),
        (OrderStatus.SHIPPED, OrderStatus.DELIVERED),
        (OrderStatus.DELIVERED, OrderStatus.REFUNDED),
        (OrderStatus.PROCESSING, OrderStatus.CANCELLED),
    ])
    def test_allowed(self, current, new):
        assert order_service.can_transition(current, new)

    @pytest.mark.parametrize("current,new", [
        (OrderStatus.SHIPPED, OrderStatus.PROCESSING),
        (OrderStatus.DELIVERED, OrderStatus.SHIPPED),
        (OrderStatus.CANCELLED, OrderStatus.PROCESSING),
        (OrderStatus.REFUNDED, OrderStatus.DELIVERED),
        (OrderStatus.SHIPPED, OrderStatus.CANCELLED),
    ])
    def test_rejected(self, current, new):
        assert not order_service.can_transition(current, new)


class TestCancel:
    def test_owner_cancels_processing_order(self, db, principal, user, make_order):
        order = make_order(user, OrderStatus.PROCESSING)

        order = order_service.cancel(db, principal, order.id)

        assert order.status == OrderStatus.CANCELLED
        assert order.cancelled_at is not None
        assert [h.status for h in order.status_history] == [OrderStatus.PROCESSING, OrderStatus.CANCELLED]
        assert order.status_history[-1].notes == "Cancelled by customer"

    def test_shipped_order_cannot_be_cancelled(self, db, principal, user, make_order):
        order = make_order(user, OrderStatus.SHIPPED)

        with pytest.raises(InvalidTransition) as exc:
            order_service.cancel(db, principal, order.id)

        assert exc.value.status_code == 400
        db.refresh(order)
        assert order.status == OrderStatus.SHIPPED
        assert len(order.status_history) == 1

    def test_other_user_cannot_cancel(self, db, other_user, user, make_order):
        order = make_order(user, OrderStatus.PROCESSING)

        with pytest.raises(Forbidden):
            order_service.cancel(db, Principal.from_user(other_user), order.id)

    def test_admin_cancel_requires_admin(self, db, principal, user, make_order):
        order = make_order(user, OrderStatus.PENDING)
        with pytest.raises(Forbidden):
            order_service.admin_cancel(db, principal, order.id)

    def test_admin_cancel(self, db, admin_principal, user, make_order):
        order = make_order(user, OrderStatus.PENDING)

        order = order_service.admin_cancel(db, admin_principal, order.id, "Fraud check failed")

        assert order.status == OrderStatus.CANCELLED
        assert order.status_history[-1].notes == "Fraud check failed"
        assert order.status_history[-1].updated_by == admin_principal.id


class TestSetStatus:
    def test_ship_with_tracking_number(self, db, admin_principal, user, make_order):
        order = make_order(user, OrderStatus.PROCESSING)

        order = order_service.set_status(db, admin_principal, order.id, OrderStatus.SHIPPED,
                                         notes="Handed to carrier", tracking_number="1Z999")

        assert order.status == OrderStatus.SHIPPED
        assert order.tracking_number == "1Z999"
        assert order.status_history[-1].notes == "Handed to carrier"

    def test_delivered_stamps_date(self, db, admin_principal, user, make_order):
        order = make_order(user, OrderStatus.SHIPPED)
        order = order_service.set_status(db, admin_principal, order.id, "delivered")
        assert order.delivered_at is not None

    def test_refund_marks_payment_refunded(self, db, admin_principal, user, make_order):
        order = make_order(user, OrderStatus.DELIVERED)

        order = order_service.set_status(db, admin_principal, order.id, OrderStatus.REFUNDED)

        assert order.payment_status == PaymentStatus.REFUNDED
        assert order.refunded_at is not None

    def test_backwards_transition_is_rejected(self, db, admin_principal, user, make_order):
        order = make_order(user, OrderStatus.SHIPPED)
        with pytest.raises(InvalidTransition):
            order_service.set_status(db, admin_principal, order.id, OrderStatus.PROCESSING)

    def test_terminal_status_is_final(self, db, admin_principal, user, make_order):
        order = make_order(user, OrderStatus.CANCELLED)
        with pytest.raises(InvalidTransition):
            order_service.set_status(db, admin_principal, order.id, OrderStatus.PROCESSING)

    def test_legacy_mode_allows_any_transition(self, db, admin_principal, user, make_order, monkeypatch):
        monkeypatch.setattr(settings, "STRICT_ORDER_TRANSITIONS", False)
        order = make_order(user, OrderStatus.SHIPPED)

        order = order_service.set_status(db, admin_principal, order.id, OrderStatus.PROCESSING)

        assert order.status == OrderStatus.PROCESSING

    def test_unknown_status(self, db, admin_principal, user, make_order):
        order = make_order(user)
        with pytest.raises(ValidationError):
            order_service.set_status(db, admin_principal, order.id, "lost")

    def test_requires_admin(self, db, principal, user, make_order):
        order = make_order(user)
        with pytest.raises(Forbidden):
            order_service.set_status(db, principal, order.id, OrderStatus.SHIPPED)


class TestPaidOrderAmounts:
    def test_amounts_are_frozen_once_paid(self, user, make_order):
        order = make_order(user)
        with pytest.raises(ValueError):
            order.total = 1.0


class TestOrdersApi:
    def test_lists_only_own_orders(self, client, user, other_user, user_headers, make_order):
        mine = make_order(user)
        make_order(other_user)

        response = client.get("/api/orders", headers=user_headers)

        data = response.json()["data"]
        assert [o["id"] for o in data["orders"]] == [mine.id]
        assert data["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}

    def test_detail_of_foreign_order_is_forbidden(self, client, other_user, user_headers, make_order):
        order = make_order(other_user)
        response = client.get(f"/api/orders/{order.id}", headers=user_headers)
        assert response.status_code == 403

    def test_admin_sees_any_order(self, client, user, admin_headers, make_order):
        order = make_order(user)
        response = client.get(f"/api/orders/{order.id}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["order_number"] == order.order_number

    def test_missing_order(self, client, user_headers):
        response = client.get("/api/orders/999", headers=user_headers)
        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Order not found"

    def test_cancel_shipped_order(self, client, user, user_headers, make_order):
        order = make_order(user, OrderStatus.SHIPPED)
        response = client.put(f"/api/orders/{order.id}/cancel", headers=user_headers)
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Order cannot be cancelled at this stage"

    def test_status_update_is_admin_only(self, client, user, user_headers, make_order):
        order = make_order(user)
        response = client.put(f"/api/orders/{order.id}/status", json={"status": "shipped"},
                              headers=user_headers)
        assert response.status_code == 403

    def test_admin_status_update(self, client, user, admin_headers, make_order):
        order = make_order(user)
        response = client.put(f"/api/orders/{order.id}/status",
                              json={"status": "shipped", "tracking_number": "1Z999"},
                              headers=admin_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "shipped"
        assert data["tracking_number"] == "1Z999"
        assert data["status_history"][-1]["status"] == "shipped"

    def test_admin_stats(self, client, user, admin_headers, make_order):
        make_order(user, OrderStatus.PROCESSING, total=64.0)
        make_order(user, OrderStatus.SHIPPED, total=36.0)

        data = client.get("/api/orders/admin/stats", headers=admin_headers).json()["data"]

        assert data["total_orders"] == 2
        assert data["total_revenue"] == 100.0
        assert {c["status"]: c["count"] for c in data["orders_by_status"]} == {
            "processing": 1, "shipped": 1,
        }
