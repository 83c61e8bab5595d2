"""Tests for user administration and login."""

import pytest
from httpx import AsyncClient

from punchclock.core.security import decode_access_token

NEW_USER = {
    "email": "New.Hire@Example.com",
    "password": "s3cret-pass",
    "full_name": "New Hire",
    "department": "Ops",
}


@pytest.mark.asyncio
async def test_create_user_assigns_codes(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/users", json=NEW_USER)
    assert resp.status_code == 201
    data = resp.json()
    assert data["email"] == "new.hire@example.com"
    assert data["role"] == "employee"
    assert data["employee_code"] == "EMP0003"
    assert data["qr_code"].startswith("PUNCH-")
    assert len(data["qr_code"]) == len("PUNCH-") + 12
    assert "hashed_password" not in data


@pytest.mark.asyncio
async def test_duplicate_email_rejected(async_client: AsyncClient):
    await async_client.post("/api/v1/users", json=NEW_USER)
    resp = await async_client.post("/api/v1/users", json=NEW_USER)
    assert resp.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "patch_",
    [{"password": "short"}, {"email": "not-an-email"}, {"role": "janitor"}, {"full_name": "  "}],
)
async def test_invalid_user_rejected(async_client: AsyncClient, patch_):
    resp = await async_client.post("/api/v1/users", json={**NEW_USER, **patch_})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_list_and_search_users(async_client: AsyncClient):
    await async_client.post("/api/v1/users", json=NEW_USER)
    everyone = (await async_client.get("/api/v1/users")).json()
    assert {u["full_name"] for u in everyone} == {"Test Admin", "Test Worker", "New Hire"}

    found = (await async_client.get("/api/v1/users", params={"search": "hire"})).json()
    assert [u["full_name"] for u in found] == ["New Hire"]

    admins = (await async_client.get("/api/v1/users", params={"role": "admin"})).json()
    assert [u["id"] for u in admins] == [1]


@pytest.mark.asyncio
async def test_update_user(async_client: AsyncClient):
    resp = await async_client.put("/api/v1/users/2", json={"department": "Night shift"})
    assert resp.status_code == 200
    assert resp.json()["department"] == "Night shift"


@pytest.mark.asyncio
async def test_regenerate_qr_code(async_client: AsyncClient):
    old = (await async_client.get("/api/v1/users/2")).json()["qr_code"]
    new = (await async_client.post("/api/v1/users/2/qr-code")).json()["qr_code"]
    assert new != old

    stale = await async_client.post("/api/v1/punch/qr", json={"qr_code": old})
    assert stale.status_code == 404


@pytest.mark.asyncio
async def test_delete_deactivates(async_client: AsyncClient):
    resp = await async_client.delete("/api/v1/users/2")
    assert resp.status_code == 200
    assert (await async_client.get("/api/v1/users/2")).json()["is_active"] is False
    listed = (await async_client.get("/api/v1/users")).json()
    assert 2 not in [u["id"] for u in listed]


@pytest.mark.asyncio
async def test_unknown_user(async_client: AsyncClient):
    assert (await async_client.get("/api/v1/users/999")).status_code == 404


@pytest.mark.asyncio
async def test_employee_cannot_manage_users(employee_client: AsyncClient):
    assert (await employee_client.get("/api/v1/users")).status_code == 403
    assert (await employee_client.post("/api/v1/users", json=NEW_USER)).status_code == 403


@pytest.mark.asyncio
async def test_me(employee_client: AsyncClient):
    resp = await employee_client.get("/api/v1/auth/me")
    assert resp.status_code == 200
    assert resp.json()["email"] == "worker@example.com"


# ── Login ───────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_login_returns_bearer_token(async_client: AsyncClient):
    user_id = (await async_client.post("/api/v1/users", json=NEW_USER)).json()["id"]
    resp = await async_client.post(
        "/api/v1/auth/login",
        data={"username": "new.hire@example.com", "password": NEW_USER["password"]},
    )
    assert resp.status_code == 200
    token = resp.json()
    assert token["token_type"] == "bearer"
    assert decode_access_token(token["access_token"])["sub"] == str(user_id)


@pytest.mark.asyncio
async def test_login_wrong_password(async_client: AsyncClient):
    await async_client.post("/api/v1/users", json=NEW_USER)
    resp = await async_client.post(
        "/api/v1/auth/login",
        data={"username": "new.hire@example.com", "password": "wrong-password"},
    )
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_login_inactive_user(async_client: AsyncClient):
    user_id = (await async_client.post("/api/v1/users", json=NEW_USER)).json()["id"]
    await async_client.delete(f"/api/v1/users/{user_id}")
    resp = await async_client.post(
        "/api/v1/auth/login",
        data={"username": "new.hire@example.com", "password": NEW_USER["password"]},
    )
    assert resp.status_code == 403
