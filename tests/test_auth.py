from storefront.models.log import Log
from storefront.utils.hashing import get_password_hash, verify_password


class TestPasswordHashing:
    def test_roundtrip(self):
        hashed = get_password_hash("s3cret!")
        assert hashed.startswith("pbkdf2_sha256$")
        assert verify_password("s3cret!", hashed)
        assert not verify_password("wrong", hashed)

    def test_salted(self):
        assert get_password_hash("same") != get_password_hash("same")

    def test_malformed_hash(self):
        assert not verify_password("anything", "not-a-hash")


class TestRegister:
    def test_register_returns_token_and_cookie(self, client):
        response = client.post("/api/auth/register", json={
            "name": "Jane Doe", "email": "Jane@Example.com", "password": "secret123",
        })

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == "jane@example.com"
        assert data["user"]["role"] == "user"
        assert "token" in response.cookies

    def test_duplicate_email(self, client, user, db):
        response = client.post("/api/auth/register", json={
            "name": "Again", "email": user.email.upper(), "password": "secret123",
        })

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "User already exists with this email"
        assert db.query(Log).filter(Log.action == "REGISTER", Log.status == "FAIL").count() == 1

    def test_short_password(self, client):
        response = client.post("/api/auth/register", json={
            "name": "Jane", "email": "jane@example.com", "password": "123",
        })
        assert response.status_code == 400


class TestLogin:
    def test_login_and_me(self, client, user):
        response = client.post("/api/auth/login", json={"email": user.email, "password": "secret123"})
        assert response.status_code == 200
        token = response.json()["data"]["access_token"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["data"]["id"] == user.id
        assert me.json()["data"]["last_login"] is not None

    def test_cookie_authenticates(self, client, user):
        client.post("/api/auth/login", json={"email": user.email, "password": "secret123"})
        assert client.get("/api/auth/me").status_code == 200

    def test_bad_password(self, client, user):
        response = client.post("/api/auth/login", json={"email": user.email, "password": "nope"})
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid credentials"

    def test_garbage_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
        assert response.status_code == 401

    def test_update_password(self, client, user, user_headers):
        response = client.put("/api/auth/updatepassword", headers=user_headers, json={
            "current_password": "secret123", "new_password": "newsecret",
        })
        assert response.status_code == 200

        login = client.post("/api/auth/login", json={"email": user.email, "password": "newsecret"})
        assert login.status_code == 200


class TestProfile:
    def test_update_profile(self, client, user_headers):
        response = client.put("/api/users/profile", headers=user_headers,
                              json={"name": "Renamed", "phone_number": "+1 555 0100"})
        data = response.json()["data"]
        assert (data["name"], data["phone_number"]) == ("Renamed", "+1 555 0100")

    def test_stats_without_orders(self, client, user_headers):
        data = client.get("/api/users/stats", headers=user_headers).json()["data"]
        assert data == {"total_orders": 0, "total_spent": 0.0, "orders_by_status": {}}
