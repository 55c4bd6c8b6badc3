from storefront.schemas.common import ErrorResponse


class TestErrorEnvelope:
    def test_root(self, client):
        assert client.get("/").json() == {"success": True, "data": {"message": "Storefront API is running"}}

    def test_unknown_route(self, client):
        response = client.get("/api/nope")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": {"message": "Not Found", "status": 404}}

    def test_domain_error_matches_error_schema(self, client, user_headers):
        response = client.get("/api/orders/999", headers=user_headers)

        body = ErrorResponse.model_validate(response.json())

        assert body.success is False
        assert (body.error.status, body.error.message, body.error.details) == (404, "Order not found", None)

    def test_validation_details(self, client, user_headers):
        response = client.post("/api/cart/items", json={"quantity": 1}, headers=user_headers)
        error = ErrorResponse.model_validate(response.json()).error
        assert response.status_code == 400
        assert error.details[0]["loc"] == ["body", "product_id"]
