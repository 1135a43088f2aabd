"""Tests for bearer authentication and the auth-failure lockout."""


class TestBearerAuthentication:
    def test_missing_token(self, client):
        """Requests without a token get 401 and a Bearer challenge."""
        response = client.get("/api/users/me")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["error"] == "MISSING_TOKEN"

    def test_expired_token(self, client, auth_headers, make_user):
        response = client.get("/api/users/me", headers=auth_headers(make_user(), expires_in=-10))
        assert response.status_code == 401
        assert response.json()["error"] == "TOKEN_EXPIRED"

    def test_wrong_audience(self, client, auth_headers, make_user):
        response = client.get("/api/users/me", headers=auth_headers(make_user(), audience="https://other"))
        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_TOKEN"

    def test_garbage_token(self, client):
        response = client.get("/api/users/me", headers={"Authorization": "Bearer not.a.jwt"})
        assert response.status_code == 401

    def test_idp_unavailable(self, client, auth_headers, make_user, jwks_server):
        """Key fetch failures are a 503, not a 401."""
        jwks_server.status_code = 503
        response = client.get("/api/users/me", headers=auth_headers(make_user()))

        assert response.status_code == 503
        assert response.json()["error"] == "IDENTITY_PROVIDER_UNAVAILABLE"

    def test_valid_token_unregistered(self, client, auth_headers):
        """A valid token for an unknown subject must register first."""
        response = client.get("/api/users/me", headers=auth_headers(subject="auth0|new", email="new@example.com"))
        assert response.status_code == 403
        assert response.json()["error"] == "IDENTITY_NOT_REGISTERED"

    def test_keys_are_fetched_once(self, client, auth_headers, make_user, jwks_server):
        user = make_user()
        for _ in range(3):
            assert client.get("/api/users/me", headers=auth_headers(user)).status_code == 200
        assert jwks_server.requests == 1


class TestAuthFailureLockout:
    def test_repeated_failures_lock_out_source(self, client, auth_headers, make_user):
        """After ten failures in a minute even valid tokens get 429."""
        bad = {"Authorization": "Bearer not.a.jwt"}
        for _ in range(10):
            assert client.get("/api/users/me", headers=bad).status_code == 401

        response = client.get("/api/users/me", headers=auth_headers(make_user()))

        assert response.status_code == 429
        assert response.json()["error"] == "RATE_LIMITED"
        assert int(response.headers["Retry-After"]) > 0

    def test_successful_requests_are_not_counted(self, client, auth_headers, make_user):
        user = make_user()
        for _ in range(12):
            assert client.get("/api/users/me", headers=auth_headers(user)).status_code == 200
