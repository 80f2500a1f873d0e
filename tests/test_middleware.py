from datetime import datetime, timedelta, timezone

from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from auth.middleware import current_subject
from auth.tokens import TokenService
from conftest import TEST_JWT_SECRET


def _assert_unauthorized(response):
    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized"}
    assert response.headers["www-authenticate"] == "Bearer"


def test_missing_header_is_rejected(client):
    _assert_unauthorized(client.get("/api/forms"))


def test_non_bearer_scheme_is_rejected(client):
    _assert_unauthorized(client.get("/api/forms", headers={"Authorization": "Basic dXNlcjpwdw=="}))


def test_bearer_without_token_is_rejected(client):
    _assert_unauthorized(client.get("/api/forms", headers={"Authorization": "Bearer "}))


def test_invalid_token_gets_same_response_as_missing(client):
    _assert_unauthorized(client.get("/api/forms", headers={"Authorization": "Bearer not.a.jwt"}))


def test_expired_token_is_rejected(client):
    token = TokenService(TEST_JWT_SECRET).issue(
        "5b0c6c1e-2f4b-4a8e-9a43-0d7b2b9f2a11",
        now=datetime.now(timezone.utc) - timedelta(days=2),
    )
    _assert_unauthorized(client.get("/api/forms", headers={"Authorization": f"Bearer {token}"}))


def test_every_protected_route_requires_token(client):
    form_id = "5b0c6c1e-2f4b-4a8e-9a43-0d7b2b9f2a11"
    _assert_unauthorized(client.post("/api/forms", json={"name": "C"}))
    _assert_unauthorized(client.get(f"/api/forms/{form_id}"))
    _assert_unauthorized(client.delete(f"/api/forms/{form_id}"))
    _assert_unauthorized(client.get(f"/api/forms/{form_id}/submissions"))
    _assert_unauthorized(client.delete(f"/api/submissions/{form_id}"))


def test_valid_token_reaches_handler(client, register):
    headers = register("owner@example.com")

    response = client.get("/api/forms", headers=headers)

    assert response.status_code == 200
    assert response.json() == []


def test_subject_missing_from_context_is_a_server_error():
    app = FastAPI()

    @app.get("/unwired")
    async def unwired(subject=Depends(current_subject)):
        return {"subject": str(subject)}

    response = TestClient(app).get("/unwired")

    assert response.status_code == 500
