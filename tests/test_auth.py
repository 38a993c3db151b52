"""Login, token handling and admin-only user management."""

from datetime import timedelta

from pipetrade.core.security import create_access_token

from tests.conftest import API, TEST_PASSWORD


async def test_login_returns_token_and_user(client, users):
    response = await client.post(f"{API}/auth/login", json={
        "email": "SALES@pipetrade.in", "password": TEST_PASSWORD,
    })
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["expires_in"] == 480 * 60
    assert body["user"]["role"] == "SALES"
    assert body["user"]["last_login_at"] is not None

    me = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "sales@pipetrade.in"


async def test_login_with_wrong_password(client, users):
    response = await client.post(f"{API}/auth/login", json={
        "email": "sales@pipetrade.in", "password": "not-the-password",
    })
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


async def test_login_inactive_user(api, client, users):
    sales_id = str(users["SALES"].id)
    await api.patch("ADMIN", f"/users/{sales_id}", {"is_active": False})
    response = await client.post(f"{API}/auth/login", json={
        "email": "sales@pipetrade.in", "password": TEST_PASSWORD,
    })
    assert response.status_code == 401


async def test_missing_token_is_401(client, users):
    response = await client.get(f"{API}/customers")
    assert response.status_code == 401
    assert response.json()["detail"] == "Unauthorized"


async def test_garbage_token_is_401(client, users):
    response = await client.get(f"{API}/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
    assert response.status_code == 401


async def test_expired_token_is_401(client, users):
    token = create_access_token(users["ADMIN"].id, expires_delta=timedelta(minutes=-5))
    response = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


async def test_wrong_role_is_403(api):
    body = await api.call("POST", "SALES", "/customers", json={"name": "Acme"}, expected=403)
    assert body["detail"] == "Access denied. Your role (SALES) does not have write access to this module."


async def test_users_are_admin_only(api):
    await api.get("MANAGEMENT", "/users", expected=403)
    users = await api.get("ADMIN", "/users")
    assert len(users) == 7


async def test_list_users_by_role(api):
    users = await api.get("ADMIN", "/users", params={"role": "QC"})
    assert [u["email"] for u in users] == ["qc@pipetrade.in"]


async def test_create_user_and_reject_duplicate(api, client):
    payload = {"email": "New.Buyer@pipetrade.in", "name": "New Buyer", "password": "Buyer@2024", "role": "PURCHASE"}
    created = await api.post("ADMIN", "/users", payload)
    assert created["email"] == "new.buyer@pipetrade.in"
    assert created["role"] == "PURCHASE"

    duplicate = await api.post("ADMIN", "/users", payload, expected=400)
    assert "already exists" in duplicate["detail"]

    login = await client.post(f"{API}/auth/login", json={"email": "new.buyer@pipetrade.in", "password": "Buyer@2024"})
    assert login.status_code == 200


async def test_short_password_rejected(api):
    await api.post("ADMIN", "/users", {
        "email": "short@pipetrade.in", "name": "Short", "password": "abc",
    }, expected=422)


async def test_change_role(api, users):
    updated = await api.patch("ADMIN", f"/users/{users['STORES'].id}", {"role": "QC"})
    assert updated["role"] == "QC"
