from tests.factories import auth_headers


class TestAuth:
    def test_register_login_and_me(self, client):
        response = client.post(
            "/api/v1/auth/register",
            json={"email": "new@example.com", "password": "correct-horse", "name": "New Shopper"},
        )
        assert response.status_code == 201
        assert response.json()["roles"] == ["shopper"]
        assert "password_hash" not in response.json()

        token = client.post(
            "/api/v1/auth/token",
            data={"username": "new@example.com", "password": "correct-horse"},
        )
        assert token.status_code == 200
        access_token = token.json()["access_token"]

        me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {access_token}"})
        assert me.status_code == 200
        assert me.json()["email"] == "new@example.com"

    def test_duplicate_email(self, client, shopper):
        response = client.post("/api/v1/auth/register", json={"email": shopper.email, "password": "long-enough"})
        assert response.status_code == 400
        assert response.json()["field"] == "email"

    def test_short_password(self, client):
        response = client.post("/api/v1/auth/register", json={"email": "a@example.com", "password": "short"})
        assert response.status_code == 400
        assert response.json()["field"] == "password"

    def test_wrong_password(self, client):
        client.post("/api/v1/auth/register", json={"email": "b@example.com", "password": "right-password"})
        response = client.post("/api/v1/auth/token", data={"username": "b@example.com", "password": "wrong-password"})
        assert response.status_code == 401
        assert response.json() == {"error": "Incorrect password. Please try again."}

    def test_bad_token(self, client):
        response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_token_for_existing_user(self, client, vendor):
        me = client.get("/api/v1/auth/me", headers=auth_headers(vendor))
        assert sorted(me.json()["roles"]) == ["shopper", "vendor"]
