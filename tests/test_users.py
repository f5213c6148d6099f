"""Tests for User API endpoints."""

PASSWORD = "secret-pass"


def _user_json(settings, **overrides):
    data = {
        "username": "newbuyer",
        "password": PASSWORD,
        "role": "Buyer",
        "machine": settings.DEFAULT_CLIENT_NAME,
        "deposit": {"value": 20},
    }
    data.update(overrides)
    return data


async def test_register_user(client, settings):
    """Test open registration of a buyer."""
    response = await client.post("/api/v1/users/", json=_user_json(settings))

    assert response.status_code == 201
    data = response.json()
    assert data["username"] == "newbuyer"
    assert data["deposit"] == {"value": 20, "currency": "USD", "unit": "cent"}
    assert data["isAdmin"] is False
    assert "password" not in data


async def test_register_user_bad_coin(client, settings):
    response = await client.post("/api/v1/users/", json=_user_json(settings, deposit={"value": 7}))

    assert response.status_code == 400


async def test_register_admin_through_open_registration(client, settings):
    response = await client.post("/api/v1/users/", json=_user_json(settings, role="Admin"))

    assert response.status_code == 400


async def test_register_duplicate_username(client, settings):
    await client.post("/api/v1/users/", json=_user_json(settings))
    response = await client.post("/api/v1/users/", json=_user_json(settings))

    assert response.status_code == 409


async def test_admin_registers_admin(client, settings, admin, buyer):
    body = _user_json(settings, username="admin02", role="Admin", deposit=None)

    response = await client.post("/api/v1/users/admin", json=body, headers=admin.headers)
    assert response.status_code == 201
    assert response.json()["isAdmin"] is True

    response = await client.post("/api/v1/users/admin", json=body, headers=buyer.headers)
    assert response.status_code == 403


async def test_list_users_admin_only(client, admin, buyer):
    response = await client.get("/api/v1/users/", headers=admin.headers)
    assert response.status_code == 200
    usernames = {u["username"] for u in response.json()}
    assert {"admin01", "buyer01"} <= usernames

    response = await client.get("/api/v1/users/", headers=buyer.headers)
    assert response.status_code == 403


async def test_get_user(client, buyer, seller, admin):
    response = await client.get(f"/api/v1/users/{buyer.user.id}", headers=buyer.headers)
    assert response.status_code == 200
    assert response.json()["deposit"]["value"] == 100

    response = await client.get(f"/api/v1/users/{buyer.user.id}", headers=seller.headers)
    assert response.status_code == 403

    response = await client.get(f"/api/v1/users/{buyer.user.id}", headers=admin.headers)
    assert response.status_code == 200


async def test_make_deposit(client, buyer):
    response = await client.post(
        f"/api/v1/users/{buyer.user.id}/deposits",
        json={"amount": {"value": 50}},
        headers=buyer.headers
    )

    assert response.status_code == 200
    assert response.json()["deposit"]["value"] == 150


async def test_make_deposit_invalid_coin(client, buyer):
    response = await client.post(
        f"/api/v1/users/{buyer.user.id}/deposits",
        json={"amount": {"value": 25}},
        headers=buyer.headers
    )

    assert response.status_code == 400


async def test_make_deposit_as_seller_forbidden(client, seller):
    response = await client.post(
        f"/api/v1/users/{seller.user.id}/deposits",
        json={"amount": {"value": 50}},
        headers=seller.headers
    )

    assert response.status_code == 403


async def test_reset_deposit(client, buyer):
    response = await client.post(f"/api/v1/users/{buyer.user.id}/deposits/reset", headers=buyer.headers)

    assert response.status_code == 200
    assert response.json()["deposit"]["value"] == 0


async def test_change_password(client, settings, buyer):
    response = await client.patch(
        f"/api/v1/users/{buyer.user.id}/password",
        json={"password": "brand-new-pass"},
        headers=buyer.headers
    )
    assert response.status_code == 200

    token = await client.post(
        "/api/v1/oauth2/token",
        json={
            "grant_type": "password",
            "client_id": settings.DEFAULT_CLIENT_ID,
            "client_secret": settings.DEFAULT_CLIENT_SECRET,
            "username": "buyer01",
            "password": "brand-new-pass",
        }
    )
    assert token.status_code == 200


async def test_update_role_admin_only(client, admin, buyer):
    response = await client.patch(
        f"/api/v1/users/{buyer.user.id}/roles",
        json={"role": "Seller"},
        headers=buyer.headers
    )
    assert response.status_code == 403

    response = await client.patch(
        f"/api/v1/users/{buyer.user.id}/roles",
        json={"role": "Seller"},
        headers=admin.headers
    )
    assert response.status_code == 200
    assert response.json()["success"] is True


async def test_delete_own_account(client, buyer):
    response = await client.delete(f"/api/v1/users/{buyer.user.id}", headers=buyer.headers)

    assert response.status_code == 200
    assert response.json()["success"] is True


async def test_list_roles(client, admin):
    response = await client.get("/api/v1/roles/", headers=admin.headers)

    assert response.status_code == 200
    names = {role["name"] for role in response.json()}
    assert names == {"Buyer", "Seller", "Admin"}


async def test_register_user_password_too_long(client, settings):
    response = await client.post("/api/v1/users/", json=_user_json(settings, password="x" * 80))

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == 400
    assert body["path"] == "/api/v1/users/"
