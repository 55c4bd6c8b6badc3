from storefront.models.cart import Cart, CartItem
from storefront.models.order import Order, OrderStatus, PaymentStatus
from storefront.models.reconciliation import StockReconciliation
from storefront.models.users import User
from storefront.services.orders import record_status


def _paid_order(db, user, total):
    order = Order(order_number=f"ORD2024030700{user.id}{int(total)}", user_id=user.id,
                  subtotal=total, tax=0.0, shipping=0.0, total=total,
                  payment_status=PaymentStatus.PAID)
    record_status(order, OrderStatus.PROCESSING)
    db.add(order)
    db.commit()
    return order


class TestDashboard:
    def test_requires_admin(self, client, user_headers):
        assert client.get("/api/admin/dashboard", headers=user_headers).status_code == 403

    def test_overview(self, client, db, user, admin_headers, make_product):
        _paid_order(db, user, 120.0)
        _paid_order(db, user, 30.0)
        make_product(stock=3)
        make_product(stock=50)

        data = client.get("/api/admin/dashboard", headers=admin_headers).json()["data"]

        overview = data["overview"]
        assert overview["total_users"] == 2
        assert overview["total_orders"] == 2
        assert overview["total_revenue"] == 150.0
        assert overview["monthly_revenue"] == 150.0
        assert [p["stock"] for p in data["low_stock_products"]] == [3]
        assert sum(d["revenue"] for d in data["daily_revenue"]) == 150.0


class TestUserManagement:
    def test_search_users(self, client, admin_headers, make_user):
        make_user("alice@example.com", name="Alice")
        make_user("bob@example.com", name="Bob")

        data = client.get("/api/admin/users", params={"search": "ali"}, headers=admin_headers).json()["data"]

        assert [u["email"] for u in data["users"]] == ["alice@example.com"]

    def test_change_role(self, client, user, admin_headers):
        response = client.put(f"/api/admin/users/{user.id}/role", json={"role": "admin"},
                              headers=admin_headers)
        assert response.json()["data"]["role"] == "admin"

    def test_cannot_change_own_role(self, client, admin, admin_headers):
        response = client.put(f"/api/admin/users/{admin.id}/role", json={"role": "user"},
                              headers=admin_headers)
        assert response.status_code == 400

    def test_delete_user_detaches_orders_and_drops_cart(self, client, db, user, user_headers,
                                                        admin_headers, make_product):
        user_id = user.id
        order_id = _paid_order(db, user, 20.0).id
        product = make_product()
        client.post("/api/cart/items", json={"product_id": product.id}, headers=user_headers)

        response = client.delete(f"/api/admin/users/{user_id}", headers=admin_headers)

        assert response.status_code == 200
        db.expire_all()
        assert db.get(User, user_id) is None
        assert db.get(Order, order_id).user_id is None
        assert db.query(Cart).count() == 0
        assert db.query(CartItem).count() == 0

    def test_new_account_does_not_inherit_deleted_user(self, client, db, admin_headers, make_user,
                                                       headers_for, make_product):
        # Most recent account, so its id is the one SQLite would hand out next
        victim = make_user("victim@example.com")
        user_id = victim.id
        user_headers = headers_for(victim)
        _paid_order(db, victim, 20.0)
        product = make_product()
        client.post("/api/cart/items", json={"product_id": product.id}, headers=user_headers)
        client.delete(f"/api/admin/users/{user_id}", headers=admin_headers)

        registered = client.post("/api/auth/register", json={
            "name": "Newcomer", "email": "newcomer@example.com", "password": "secret123",
        }).json()["data"]
        headers = {"Authorization": f"Bearer {registered['access_token']}"}

        assert registered["user"]["id"] != user_id
        assert client.get("/api/orders", headers=headers).json()["data"]["orders"] == []
        assert client.get("/api/cart", headers=headers).json()["data"]["items"] == []
        assert client.get("/api/auth/me", headers=user_headers).status_code == 401

    def test_cannot_delete_self(self, client, admin, admin_headers):
        assert client.delete(f"/api/admin/users/{admin.id}", headers=admin_headers).status_code == 400


class TestReconciliation:
    def test_list_and_resolve(self, client, db, user, admin, admin_headers, make_product):
        product = make_product(stock=0)
        order = _paid_order(db, user, 10.0)
        db.add(StockReconciliation(order_id=order.id, product_id=product.id, requested=2, available=0))
        db.commit()

        entries = client.get("/api/admin/reconciliation", headers=admin_headers).json()["data"]["entries"]
        assert len(entries) == 1

        response = client.put(f"/api/admin/reconciliation/{entries[0]['id']}/resolve",
                              json={"notes": "Restocked from supplier"}, headers=admin_headers)
        data = response.json()["data"]
        assert data["resolved"] is True
        assert data["resolved_by"] == admin.id

        again = client.put(f"/api/admin/reconciliation/{entries[0]['id']}/resolve", headers=admin_headers)
        assert again.status_code == 400
        assert client.get("/api/admin/reconciliation", headers=admin_headers).json()["data"]["entries"] == []


class TestAuditLog:
    def test_cart_actions_are_logged(self, client, user_headers, admin_headers, make_product):
        product = make_product()
        client.post("/api/cart/items", json={"product_id": product.id}, headers=user_headers)

        data = client.get("/api/logs", params={"action": "CART_ADD"}, headers=admin_headers).json()["data"]

        assert len(data["items"]) == 1
        assert data["items"][0]["meta"]["product_id"] == product.id
