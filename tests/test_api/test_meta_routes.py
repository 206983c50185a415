# tests/test_api/test_meta_routes.py
import uuid

import pytest

pytestmark = pytest.mark.anyio


async def test_healthz(async_client):
    resp = await async_client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


async def test_readyz_reports_each_check(async_client):
    resp = await async_client.get("/readyz")
    body = resp.json()
    assert set(body["checks"]) == {"db", "redis"}
    assert resp.status_code == (200 if body["ready"] else 503)


async def test_security_headers_and_request_id(async_client):
    incoming = str(uuid.uuid4())
    resp = await async_client.get("/healthz", headers={"X-Request-ID": incoming})

    assert resp.headers["x-request-id"] == incoming
    assert resp.headers["x-content-type-options"] == "nosniff"
    assert resp.headers["x-frame-options"] == "DENY"


async def test_problem_body_carries_request_id(async_client):
    incoming = str(uuid.uuid4())
    resp = await async_client.get(f"/api/v1/videos/{uuid.uuid4()}", headers={"X-Request-ID": incoming})

    assert resp.status_code == 404
    assert resp.headers["content-type"].startswith("application/problem+json")
    body = resp.json()
    assert body["request_id"] == incoming
    assert body["status"] == 404
    assert body["title"] == "NotFound"
