from conftest import PASSWORD, bearer


async def register(client, email):
    response = await client.post("/auth/register", json={"email": email, "password": PASSWORD})
    assert response.status_code == 201, response.text
    return response.json()["token"]


async def setup_restaurant(client, token):
    headers = bearer(token)
    response = await client.post("/restaurants", json={"name": "Trattoria Roma"}, headers=headers)
    assert response.status_code == 201, response.text
    restaurant_id = response.json()["id"]

    response = await client.post(
        f"/restaurants/{restaurant_id}/menu/sections", json={"name": "Mains"}, headers=headers
    )
    assert response.status_code == 201, response.text
    section_id = response.json()["id"]

    response = await client.post(
        f"/restaurants/{restaurant_id}/menu/sections/{section_id}/items",
        json={"name": "Burger", "price": 9.5},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    item_id = response.json()["id"]

    response = await client.post(
        f"/restaurants/{restaurant_id}/tables", json={"name": "Table 1"}, headers=headers
    )
    assert response.status_code == 201, response.text
    table = response.json()

    return restaurant_id, section_id, item_id, table


# =============================================================================
# AUTH
# =============================================================================

async def test_register_login_and_me(client):
    await register(client, "owner@example.com")

    response = await client.post(
        "/auth/login", json={"email": "owner@example.com", "password": PASSWORD}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["user"]["email"] == "owner@example.com"
    assert "password_hash" not in body["user"]

    response = await client.get("/auth/me", headers=bearer(body["token"]))
    assert response.status_code == 200
    assert response.json()["id"] == body["user"]["id"]


async def test_duplicate_registration_conflicts(client):
    await register(client, "owner@example.com")
    response = await client.post(
        "/auth/register", json={"email": "owner@example.com", "password": PASSWORD}
    )
    assert response.status_code == 409
    assert response.json()["success"] is False


async def test_bad_credentials_share_one_message(client):
    await register(client, "owner@example.com")
    wrong_password = await client.post(
        "/auth/login", json={"email": "owner@example.com", "password": "not-the-password"}
    )
    unknown_email = await client.post(
        "/auth/login", json={"email": "ghost@example.com", "password": PASSWORD}
    )
    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json()["error"] == unknown_email.json()["error"] == "Invalid credentials"


async def test_missing_or_bad_token_is_401(client):
    assert (await client.get("/auth/me")).status_code == 401
    assert (await client.get("/auth/me", headers=bearer("garbage"))).status_code == 401
    assert (await client.get("/restaurants")).status_code == 401


async def test_schema_violation_is_400(client):
    response = await client.post("/auth/register", json={"email": "not-an-email", "password": "x"})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"


# =============================================================================
# RESTAURANTS & MANAGERS
# =============================================================================

async def test_creator_becomes_super_admin(client):
    token = await register(client, "owner@example.com")
    restaurant_id, *_ = await setup_restaurant(client, token)

    response = await client.get("/restaurants", headers=bearer(token))
    assert response.status_code == 200
    [mine] = response.json()
    assert mine["id"] == restaurant_id
    assert mine["role"] == "super_admin"
    assert mine["can_manage_menu"] is True

    response = await client.get(f"/restaurants/{restaurant_id}", headers=bearer(token))
    assert response.status_code == 200
    assert [m["email"] for m in response.json()["managers"]] == ["owner@example.com"]


async def test_invited_manager_cannot_delete_restaurant(client):
    owner_token = await register(client, "owner@example.com")
    restaurant_id, *_ = await setup_restaurant(client, owner_token)

    response = await client.post(
        f"/restaurants/{restaurant_id}/managers/invite",
        json={"email": "e2@x.com", "can_manage_menu": True},
        headers=bearer(owner_token),
    )
    assert response.status_code == 201, response.text
    invite_token = response.json()["invite_token"]

    response = await client.post(
        f"/restaurants/{restaurant_id}/managers/join/{invite_token}",
        json={"email": "e2@x.com", "password": PASSWORD},
    )
    assert response.status_code == 200, response.text
    manager_token = response.json()["token"]

    response = await client.get("/restaurants", headers=bearer(manager_token))
    [membership] = response.json()
    assert membership["role"] == "manager"
    assert membership["can_manage_menu"] is True

    response = await client.delete(f"/restaurants/{restaurant_id}", headers=bearer(manager_token))
    assert response.status_code == 403

    response = await client.post(
        f"/restaurants/{restaurant_id}/managers/join/{invite_token}",
        json={"email": "e2@x.com", "password": PASSWORD},
    )
    assert response.status_code == 400


async def test_outsider_is_forbidden(client):
    owner_token = await register(client, "owner@example.com")
    outsider_token = await register(client, "outsider@example.com")
    restaurant_id, *_ = await setup_restaurant(client, owner_token)

    for path in (f"/restaurants/{restaurant_id}", f"/restaurants/{restaurant_id}/orders"):
        response = await client.get(path, headers=bearer(outsider_token))
        assert response.status_code == 403


async def test_removed_manager_is_forbidden_on_next_request(client):
    owner_token = await register(client, "owner@example.com")
    restaurant_id, *_ = await setup_restaurant(client, owner_token)
    response = await client.post(
        f"/restaurants/{restaurant_id}/managers/invite",
        json={"email": "e2@x.com"},
        headers=bearer(owner_token),
    )
    invite_token = response.json()["invite_token"]
    response = await client.post(
        f"/restaurants/{restaurant_id}/managers/join/{invite_token}",
        json={"email": "e2@x.com", "password": PASSWORD},
    )
    manager = response.json()
    manager_headers = bearer(manager["token"])

    assert (await client.get(f"/restaurants/{restaurant_id}/orders", headers=manager_headers)).status_code == 200

    response = await client.delete(
        f"/restaurants/{restaurant_id}/managers/{manager['user']['id']}",
        headers=bearer(owner_token),
    )
    assert response.status_code == 204

    assert (await client.get(f"/restaurants/{restaurant_id}/orders", headers=manager_headers)).status_code == 403


async def test_super_admin_cannot_remove_self(client):
    token = await register(client, "owner@example.com")
    restaurant_id, *_ = await setup_restaurant(client, token)
    me = (await client.get("/auth/me", headers=bearer(token))).json()

    response = await client.delete(
        f"/restaurants/{restaurant_id}/managers/{me['id']}", headers=bearer(token)
    )
    assert response.status_code == 400


async def test_update_and_delete_restaurant(client):
    token = await register(client, "owner@example.com")
    restaurant_id, *_ = await setup_restaurant(client, token)

    response = await client.put(
        f"/restaurants/{restaurant_id}", json={"address": "1 Via Appia"}, headers=bearer(token)
    )
    assert response.status_code == 200
    assert response.json()["address"] == "1 Via Appia"
    assert response.json()["name"] == "Trattoria Roma"

    response = await client.put(f"/restaurants/{restaurant_id}", json={}, headers=bearer(token))
    assert response.status_code == 400

    response = await client.delete(f"/restaurants/{restaurant_id}", headers=bearer(token))
    assert response.status_code == 204
    assert (await client.get("/restaurants", headers=bearer(token))).json() == []


async def test_optional_restaurant_field_can_be_cleared(client):
    token = await register(client, "owner@example.com")
    restaurant_id, *_ = await setup_restaurant(client, token)
    await client.put(
        f"/restaurants/{restaurant_id}", json={"address": "1 Via Appia"}, headers=bearer(token)
    )

    response = await client.put(
        f"/restaurants/{restaurant_id}", json={"address": None}, headers=bearer(token)
    )
    assert response.status_code == 200
    assert response.json()["address"] is None


# =============================================================================
# TABLES & MENU
# =============================================================================

async def test_table_code_refresh_and_qr_url(client):
    token = await register(client, "owner@example.com")
    restaurant_id, _, _, table = await setup_restaurant(client, token)
    old_code = table["unique_code"]
    assert len(old_code) == 8 and old_code.isalnum() and old_code.upper() == old_code

    response = await client.post(
        f"/restaurants/{restaurant_id}/tables/{table['id']}/refresh-code", headers=bearer(token)
    )
    assert response.status_code == 200
    new_code = response.json()["unique_code"]
    assert new_code != old_code

    assert (await client.get(f"/menu/{restaurant_id}/{old_code}")).status_code == 404
    assert (await client.get(f"/menu/{restaurant_id}/{new_code}")).status_code == 200

    response = await client.get(
        f"/restaurants/{restaurant_id}/tables/{table['id']}/qr-url", headers=bearer(token)
    )
    assert response.status_code == 200
    assert response.json()["qr_url"].endswith(f"/m/{restaurant_id}/{new_code}")


async def test_reorder_menu_items(client):
    token = await register(client, "owner@example.com")
    restaurant_id, section_id, burger_id, _ = await setup_restaurant(client, token)
    response = await client.post(
        f"/restaurants/{restaurant_id}/menu/sections/{section_id}/items",
        json={"name": "Fries", "price": 3.25},
        headers=bearer(token),
    )
    fries_id = response.json()["id"]

    response = await client.put(
        f"/restaurants/{restaurant_id}/menu/reorder",
        json={"item_orders": [
            {"item_id": burger_id, "display_order": 1},
            {"item_id": fries_id, "display_order": 0},
        ]},
        headers=bearer(token),
    )
    assert response.status_code == 200, response.text

    sections = (await client.get(f"/restaurants/{restaurant_id}/menu", headers=bearer(token))).json()
    assert [i["name"] for i in sections[0]["items"]] == ["Fries", "Burger"]

    response = await client.put(
        f"/restaurants/{restaurant_id}/menu/reorder",
        json={"item_orders": [{"item_id": "missing", "display_order": 0}]},
        headers=bearer(token),
    )
    assert response.status_code == 404


async def test_public_menu_hides_unavailable_items(client):
    token = await register(client, "owner@example.com")
    restaurant_id, _, item_id, table = await setup_restaurant(client, token)

    response = await client.get(f"/menu/{restaurant_id}/{table['unique_code']}")
    assert response.status_code == 200
    body = response.json()
    assert body["restaurant_name"] == "Trattoria Roma"
    assert [i["name"] for i in body["sections"][0]["items"]] == ["Burger"]

    response = await client.put(
        f"/restaurants/{restaurant_id}/menu/items/{item_id}",
        json={"available": False},
        headers=bearer(token),
    )
    assert response.status_code == 200

    public = (await client.get(f"/menu/{restaurant_id}/{table['unique_code']}")).json()
    assert public["sections"][0]["items"] == []
    full = (await client.get(f"/restaurants/{restaurant_id}/menu", headers=bearer(token))).json()
    assert [i["name"] for i in full[0]["items"]] == ["Burger"]


# =============================================================================
# ORDERS
# =============================================================================

async def test_order_flow(client):
    token = await register(client, "owner@example.com")
    restaurant_id, _, item_id, table = await setup_restaurant(client, token)

    response = await client.post("/orders", json={
        "table_code": table["unique_code"],
        "items": [{"menu_item_id": item_id, "quantity": 3, "special_requests": "no onions"}],
        "customer_name": "  Ana  ",
        # Client prices are not part of the contract and are ignored
        "total_amount": 0.01,
    })
    assert response.status_code == 201, response.text
    placed = response.json()
    assert placed["total_amount"] == 28.5
    assert placed["status"] == "pending"

    detail = (await client.get(f"/orders/{placed['order_id']}")).json()
    assert detail["customer_name"] == "Ana"
    assert detail["items"] == [{
        "menu_item_id": item_id,
        "menu_item_name": "Burger",
        "quantity": 3,
        "price": 9.5,
        "special_requests": "no onions",
    }]

    for path in (
        f"/restaurants/{restaurant_id}/orders",
        f"/restaurants/{restaurant_id}/orders/today",
        f"/restaurants/{restaurant_id}/tables/{table['id']}/orders",
    ):
        response = await client.get(path, headers=bearer(token))
        assert response.status_code == 200, path
        assert [o["id"] for o in response.json()] == [placed["order_id"]]

    response = await client.put(
        f"/restaurants/{restaurant_id}/orders/{placed['order_id']}/status",
        json={"status": "confirmed"},
        headers=bearer(token),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"


async def test_order_against_unknown_code_is_404_and_writes_nothing(client):
    token = await register(client, "owner@example.com")
    restaurant_id, _, item_id, _ = await setup_restaurant(client, token)

    response = await client.post("/orders", json={
        "table_code": "ZZZZZZZZ",
        "items": [{"menu_item_id": item_id, "quantity": 1}],
    })
    assert response.status_code == 404

    response = await client.get(f"/restaurants/{restaurant_id}/orders", headers=bearer(token))
    assert response.json() == []


async def test_order_with_bad_quantity_is_400(client):
    token = await register(client, "owner@example.com")
    _, _, item_id, table = await setup_restaurant(client, token)

    response = await client.post("/orders", json={
        "table_code": table["unique_code"],
        "items": [{"menu_item_id": item_id, "quantity": 0}],
    })
    assert response.status_code == 400


async def test_blank_customer_name_becomes_absent(client):
    token = await register(client, "owner@example.com")
    _, _, item_id, table = await setup_restaurant(client, token)

    response = await client.post("/orders", json={
        "table_code": table["unique_code"],
        "items": [{"menu_item_id": item_id, "quantity": 1}],
        "customer_name": "   ",
    })
    detail = (await client.get(f"/orders/{response.json()['order_id']}")).json()
    assert detail["customer_name"] is None


async def test_unknown_order_is_404(client):
    assert (await client.get("/orders/does-not-exist")).status_code == 404


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["database"] == "healthy"
    assert body["status"] == "operational"
