import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from starlette.requests import Request

import repos.user_repo
import security.operator_auth as operator_auth
from app.api_service import app
from config.settings import settings
from repos.user_repo import UserRepository
from tests.fakes import FakeFirestore


def _request(token=None):
    headers = [(b"authorization", f"Bearer {token}".encode())] if token else []
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers})


@pytest.fixture
def users():
    db = FakeFirestore()
    db.put("users/op1", {"isAdmin": True, "displayName": "Ops Person"})
    return UserRepository(db=db)


@pytest.fixture
def verified(monkeypatch):
    seen = {}

    def verify(token, request, audience=None):
        seen["token"], seen["audience"] = token, audience
        if token == "bad":
            raise ValueError("Token expired")
        return {"email": "Ops@Example.com", "user_id": "op1", "sub": "op1"}

    monkeypatch.setattr(operator_auth.id_token, "verify_firebase_token", verify)
    monkeypatch.setattr(settings, "OPERATOR_AUTH_AUDIENCE", "demo-project")
    monkeypatch.setattr(settings, "OPERATOR_ALLOWED_EMAILS", "")
    return seen


def test_missing_token():
    with pytest.raises(HTTPException) as excinfo:
        operator_auth.verify_operator_request(_request())
    assert excinfo.value.status_code == 401


def test_unconfigured_audience_fails_closed(verified, monkeypatch, users):
    monkeypatch.setattr(settings, "OPERATOR_AUTH_AUDIENCE", "")
    with pytest.raises(HTTPException) as excinfo:
        operator_auth.verify_operator_request(_request("tok"), users=users)
    assert excinfo.value.status_code == 500
    assert verified == {}


def test_valid_token_returns_claims_with_token(verified, users):
    claims = operator_auth.verify_operator_request(_request("tok"), users=users)
    assert claims["user_id"] == "op1"
    assert claims["role"] == "admin"
    assert claims["name"] == "Ops Person"
    assert claims["id_token"] == "tok"
    assert verified == {"token": "tok", "audience": "demo-project"}


def test_invalid_token(verified, users):
    with pytest.raises(HTTPException) as excinfo:
        operator_auth.verify_operator_request(_request("bad"), users=users)
    assert excinfo.value.detail == "invalid_operator_token"


def test_email_allow_list(verified, monkeypatch, users):
    monkeypatch.setattr(settings, "OPERATOR_ALLOWED_EMAILS", "admin@example.com, ops@example.com")
    assert operator_auth.verify_operator_request(_request("tok"), users=users)["email"] == "Ops@Example.com"

    monkeypatch.setattr(settings, "OPERATOR_ALLOWED_EMAILS", "admin@example.com")
    with pytest.raises(HTTPException) as excinfo:
        operator_auth.verify_operator_request(_request("tok"), users=users)
    assert excinfo.value.status_code == 403


def test_semi_admin_is_accepted(verified, users):
    users.db.put("users/op1", {"isSemiAdmin": True})
    assert operator_auth.verify_operator_request(_request("tok"), users=users)["role"] == "semi_admin"


@pytest.mark.parametrize(
    "profile, detail",
    [
        (None, "operator_profile_not_found"),
        ({}, "admin_privileges_required"),
        ({"isAdmin": False, "isSemiAdmin": False}, "admin_privileges_required"),
        ({"isAdmin": "true"}, "admin_privileges_required"),
    ],
)
def test_signed_in_user_without_admin_flag_is_forbidden(verified, profile, detail):
    db = FakeFirestore()
    if profile is not None:
        db.put("users/op1", profile)

    with pytest.raises(HTTPException) as excinfo:
        operator_auth.verify_operator_request(_request("tok"), users=UserRepository(db=db))

    assert excinfo.value.status_code == 403
    assert excinfo.value.detail == detail


def test_non_admin_token_gets_403_from_the_api(verified, monkeypatch):
    db = FakeFirestore()
    db.put("users/op1", {"email": "ops@example.com"})
    monkeypatch.setattr(repos.user_repo, "get_firestore_client", lambda: db)

    r = TestClient(app).get("/admin/applications/products", headers={"Authorization": "Bearer tok"})

    assert r.status_code == 403
    assert r.json()["detail"] == "admin_privileges_required"
