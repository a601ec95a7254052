"""
Tests for auth endpoints, the bearer guard, error mapping and health.
"""
import jwt
import pytest
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient
from sqlalchemy import create_engine

from suba.infrastructure.db.models import User
from suba.main import create_app


class TestRegisterLogin:
    def test_register(self, client):
        resp = client.post("/api/auth/register", json={
            "full_name": "Bola Ade", "email": "Bola@Example.com", "password": "pw123456",
        })
        assert resp.status_code == 201
        body = resp.json()
        assert body["token"]
        assert body["user"]["email"] == "bola@example.com"
        assert body["user"]["default_currency"] == "NGN"
        assert "password_hash" not in body["user"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
        assert me.status_code == 200
        assert me.json()["full_name"] == "Bola Ade"

    def test_register_missing_fields(self, client):
        resp = client.post("/api/auth/register", json={"email": "x@example.com"})
        assert resp.status_code == 400
        assert resp.json()["missing"] == ["full_name", "password"]

    def test_register_duplicate(self, client, user):
        resp = client.post("/api/auth/register", json={
            "full_name": "Ada", "email": "ada@example.com", "password": "x",
        })
        assert resp.status_code == 400
        assert resp.json()["message"] == "User already exists."

    def test_login(self, client, user):
        resp = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "secret123"})
        assert resp.status_code == 200
        assert resp.json()["user"]["id"] == user.id

    def test_login_wrong_password(self, client, user):
        resp = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "nope"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid credentials."

    def test_malformed_body(self, client):
        resp = client.post("/api/auth/login", content="{not json", headers={"Content-Type": "application/json"})
        assert resp.status_code == 400


class TestBearerGuard:
    def test_no_token(self, client):
        resp = client.get("/api/subscriptions/")
        assert resp.status_code == 401
        assert resp.json()["message"] == "Not authorized, no token"

    def test_wrong_scheme(self, client):
        resp = client.get("/api/subscriptions/", headers={"Authorization": "Basic abc"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Not authorized, no token"

    def test_bad_signature(self, client, user):
        token = jwt.encode({"sub": str(user.id)}, "another-secret", algorithm="HS256")
        resp = client.get("/api/subscriptions/", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Not authorized, token invalid"

    def test_expired_token(self, client, settings, user):
        token = jwt.encode(
            {"sub": str(user.id), "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            settings.SECRET_KEY, algorithm="HS256",
        )
        resp = client.get("/api/subscriptions/", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Not authorized, token invalid"

    def test_garbage_token(self, client):
        resp = client.get("/api/subscriptions/", headers={"Authorization": "Bearer not.a.jwt"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Not authorized, token invalid"

    def test_deleted_user(self, client, db_session, user, auth_headers):
        headers = auth_headers(user)
        db_session.query(User).filter(User.id == user.id).delete()
        db_session.commit()
        resp = client.get("/api/auth/me", headers=headers)
        assert resp.status_code == 401
        assert resp.json()["message"] == "User no longer exists"


class TestSystem:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "OK", "database": "Connected"}

    def test_health_database_down(self, settings, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path}/missing/dir/db.sqlite")
        resp = TestClient(create_app(settings=settings, engine=engine)).get("/api/health")
        assert resp.status_code == 500
        assert resp.json()["database"] == "Disconnected"

    def test_unhandled_error_is_json_500(self, app):
        @app.get("/api/boom")
        def boom():
            raise RuntimeError("kaboom")

        resp = TestClient(app).get("/api/boom")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Something went wrong!", "details": "kaboom", "code": "RuntimeError"}
