from datetime import datetime

from sqlalchemy import update

from news_api.users.models import User, UserRole

USERS_URL = "/api/users"


async def test_list_users_requires_staff(client, alice, editor, headers):
    assert (await client.get(USERS_URL)).status_code == 401

    forbidden = await client.get(USERS_URL, headers=headers(alice))
    assert forbidden.status_code == 403
    assert forbidden.json()["message"] == "Access denied - insufficient permissions"

    res = await client.get(USERS_URL, headers=headers(editor))
    assert res.status_code == 200


async def test_list_users_paginates_and_filters(client, admin, make_user, headers):
    for i in range(12):
        await make_user(f"reader{i:02d}")
    await make_user("writer", UserRole.EDITOR)

    res = await client.get(USERS_URL, params={"limit": 5, "page": 3}, headers=headers(admin))
    data = res.json()["data"]
    assert data["pagination"] == {"page": 3, "limit": 5, "total": 14, "pages": 3}
    assert len(data["users"]) == 4
    assert all("password" not in user for user in data["users"])

    editors = await client.get(USERS_URL, params={"role": "editor"}, headers=headers(admin))
    assert [user["username"] for user in editors.json()["data"]["users"]] == ["writer"]

    search = await client.get(USERS_URL, params={"search": "READER1"}, headers=headers(admin))
    assert search.json()["data"]["pagination"]["total"] == 2


async def test_list_users_rejects_bad_limit(client, admin, headers):
    res = await client.get(USERS_URL, params={"limit": 500}, headers=headers(admin))
    assert res.status_code == 400


async def test_get_user(client, admin, alice, headers):
    res = await client.get(f"{USERS_URL}/{alice.id}", headers=headers(admin))
    assert res.status_code == 200
    assert res.json()["data"]["user"]["username"] == "alice"

    missing = await client.get(f"{USERS_URL}/9999", headers=headers(admin))
    assert missing.status_code == 404
    assert missing.json()["message"] == "User not found"


async def test_invalid_id_parameter(client, admin, headers):
    for raw in ("abc", "0", "-3"):
        res = await client.get(f"{USERS_URL}/{raw}", headers=headers(admin))
        assert res.status_code == 400
        assert res.json()["message"] == "Invalid ID parameter"


async def test_admin_creates_user_with_role(client, admin, editor, headers):
    body = {"username": "newbie", "email": "newbie@example.com", "password": "secret123", "role": "editor"}
    assert (await client.post(USERS_URL, json=body, headers=headers(editor))).status_code == 403

    res = await client.post(USERS_URL, json=body, headers=headers(admin))
    assert res.status_code == 201
    created = res.json()["data"]["user"]
    assert created["role"] == "editor"

    fetched = await client.get(f"{USERS_URL}/{created['id']}", headers=headers(admin))
    assert fetched.json()["data"]["user"] == created


async def test_update_user_gate(client, alice, bob, headers):
    res = await client.put(f"{USERS_URL}/{bob.id}", json={"first_name": "Mallory"}, headers=headers(alice))
    assert res.status_code == 403

    own = await client.put(f"{USERS_URL}/{alice.id}", json={"first_name": "Al"}, headers=headers(alice))
    assert own.status_code == 200
    assert own.json()["data"]["user"]["first_name"] == "Al"


async def test_non_admin_cannot_change_own_role(client, editor, alice, headers):
    res = await client.put(f"{USERS_URL}/{editor.id}", json={"role": "admin", "last_name": "Ed"}, headers=headers(editor))
    assert res.status_code == 200
    assert res.json()["data"]["user"]["role"] == "editor"

    own = await client.put(f"{USERS_URL}/{alice.id}", json={"role": "admin"}, headers=headers(alice))
    assert own.status_code == 400
    assert own.json()["message"] == "No valid fields to update"


async def test_editor_changes_another_users_role(client, editor, alice, headers):
    res = await client.put(f"{USERS_URL}/{alice.id}", json={"role": "editor"}, headers=headers(editor))
    assert res.status_code == 200
    assert res.json()["data"]["user"]["role"] == "editor"


async def test_admin_changes_role(client, admin, alice, headers):
    res = await client.put(f"{USERS_URL}/{alice.id}", json={"role": "editor"}, headers=headers(admin))
    assert res.json()["data"]["user"]["role"] == "editor"


async def test_update_user_duplicate_username(client, admin, alice, bob, headers):
    res = await client.put(f"{USERS_URL}/{alice.id}", json={"username": "bob"}, headers=headers(admin))
    assert res.status_code == 400
    assert res.json()["message"] == "Another user with this username already exists"
    assert res.json()["details"] == {"field": "username"}


async def test_update_missing_user(client, admin, headers):
    res = await client.put(f"{USERS_URL}/9999", json={"first_name": "X"}, headers=headers(admin))
    assert res.status_code == 404


async def test_admin_cannot_delete_or_deactivate_self(client, admin, headers):
    res = await client.delete(f"{USERS_URL}/{admin.id}", headers=headers(admin))
    assert res.status_code == 400
    assert res.json()["message"] == "You cannot delete your own account"

    res = await client.patch(f"{USERS_URL}/{admin.id}/toggle-status", headers=headers(admin))
    assert res.status_code == 400
    assert res.json()["message"] == "You cannot change your own status"

    res = await client.put(f"{USERS_URL}/{admin.id}", json={"is_active": False}, headers=headers(admin))
    assert res.status_code == 400
    assert res.json()["message"] == "You cannot change your own status"

    mixed = {"is_active": False, "first_name": "X"}
    res = await client.put(f"{USERS_URL}/{admin.id}", json=mixed, headers=headers(admin))
    assert res.status_code == 400
    assert res.json()["message"] == "You cannot change your own status"

    profile = await client.get("/api/auth/profile", headers=headers(admin))
    assert profile.json()["data"]["user"]["is_active"] is True


async def test_toggle_user_status(client, admin, alice, headers):
    res = await client.patch(f"{USERS_URL}/{alice.id}/toggle-status", headers=headers(admin))
    assert res.status_code == 200
    assert res.json()["message"] == "User deactivated successfully"
    assert res.json()["data"]["user"]["is_active"] is False

    res = await client.patch(f"{USERS_URL}/{alice.id}/toggle-status", headers=headers(admin))
    assert res.json()["message"] == "User activated successfully"


async def test_reset_password(client, admin, alice, headers):
    res = await client.put(
        f"{USERS_URL}/{alice.id}/reset-password",
        json={"new_password": "brandnew"},
        headers=headers(admin),
    )
    assert res.status_code == 200
    login = await client.post("/api/auth/login", json={"email": "alice@example.com", "password": "brandnew"})
    assert login.status_code == 200

    missing = await client.put(f"{USERS_URL}/9999/reset-password", json={"new_password": "brandnew"}, headers=headers(admin))
    assert missing.status_code == 404


async def test_delete_user_cascades_to_news(client, admin, alice, headers):
    created = await client.post("/api/news", json={"title": "Alice writes", "content": "Body"}, headers=headers(alice))
    news_id = created.json()["data"]["news"]["id"]

    res = await client.delete(f"{USERS_URL}/{alice.id}", headers=headers(admin))
    assert res.status_code == 200
    assert res.json()["message"] == "User deleted successfully"

    assert (await client.get(f"{USERS_URL}/{alice.id}", headers=headers(admin))).status_code == 404
    assert (await client.get(f"/api/news/{news_id}", headers=headers(admin))).status_code == 404


async def test_update_and_toggle_stamp_updated_at(client, admin, alice, headers, db):
    async def backdate():
        await db.execute(update(User).where(User.id == alice.id).values(updated_at=datetime(2000, 1, 1)))
        await db.commit()

    await backdate()
    res = await client.put(f"{USERS_URL}/{alice.id}", json={"username": "alice"}, headers=headers(admin))
    assert res.status_code == 200
    assert not res.json()["data"]["user"]["updated_at"].startswith("2000-01-01")

    await backdate()
    res = await client.patch(f"{USERS_URL}/{alice.id}/toggle-status", headers=headers(admin))
    assert not res.json()["data"]["user"]["updated_at"].startswith("2000-01-01")
