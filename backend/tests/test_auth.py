REGISTER_URL = "/api/auth/register"
LOGIN_URL = "/api/auth/login"
PROFILE_URL = "/api/auth/profile"


def _alice(**overrides):
    body = {
        "username": "alice",
        "email": "alice@example.com",
        "password": "secret123",
        "first_name": "Alice",
    }
    body.update(overrides)
    return body


async def test_register(client):
    res = await client.post(REGISTER_URL, json=_alice())
    assert res.status_code == 201
    body = res.json()
    assert body["status"] == "success"
    assert body["message"] == "User registered successfully"
    user = body["data"]["user"]
    assert user["username"] == "alice"
    assert user["role"] == "user"
    assert user["last_name"] is None
    assert "password" not in user


async def test_register_ignores_role_in_body(client):
    res = await client.post(REGISTER_URL, json=_alice(role="admin"))
    assert res.status_code == 201
    assert res.json()["data"]["user"]["role"] == "user"


async def test_register_duplicate_email(client):
    await client.post(REGISTER_URL, json=_alice())
    res = await client.post(REGISTER_URL, json=_alice(username="alice2"))
    assert res.status_code == 400
    assert res.json() == {"status": "error", "message": "User with this email already exists"}


async def test_register_duplicate_username(client):
    await client.post(REGISTER_URL, json=_alice())
    res = await client.post(REGISTER_URL, json=_alice(email="other@example.com"))
    assert res.status_code == 400
    assert res.json()["message"] == "User with this username already exists"


async def test_register_validation(client):
    res = await client.post(REGISTER_URL, json=_alice(username="al", password="123"))
    assert res.status_code == 400
    body = res.json()
    assert body["message"] == "Validation error"
    fields = {detail["field"] for detail in body["details"]}
    assert {"username", "password"} <= fields


async def test_register_rejects_non_alphanumeric_username(client):
    res = await client.post(REGISTER_URL, json=_alice(username="alice_smith"))
    assert res.status_code == 400


async def test_login(client, alice):
    res = await client.post(LOGIN_URL, json={"email": "alice@example.com", "password": "secret123"})
    assert res.status_code == 200
    body = res.json()
    assert body["message"] == "Login successful"
    assert body["data"]["token"]
    assert body["data"]["user"]["id"] == alice.id

    profile = await client.get(PROFILE_URL, headers={"Authorization": f"Bearer {body['data']['token']}"})
    assert profile.status_code == 200
    assert profile.json()["data"]["user"]["email"] == "alice@example.com"


async def test_login_wrong_password(client, alice):
    res = await client.post(LOGIN_URL, json={"email": "alice@example.com", "password": "nope-nope"})
    assert res.status_code == 401
    assert res.json()["message"] == "Invalid email or password"


async def test_login_deactivated_account(client, make_user):
    await make_user("carol", is_active=False)
    res = await client.post(LOGIN_URL, json={"email": "carol@example.com", "password": "secret123"})
    assert res.status_code == 401
    assert res.json()["message"] == "Account is deactivated"


async def test_profile_requires_token(client):
    res = await client.get(PROFILE_URL)
    assert res.status_code == 401
    assert res.json()["message"] == "Access token is required"


async def test_profile_with_invalid_token(client):
    res = await client.get(PROFILE_URL, headers={"Authorization": "Bearer not.a.token"})
    assert res.status_code == 401
    assert res.json()["message"] == "Invalid token"


async def test_token_of_deactivated_user_is_rejected(client, admin, alice, headers):
    await client.patch(f"/api/users/{alice.id}/toggle-status", headers=headers(admin))
    res = await client.get(PROFILE_URL, headers=headers(alice))
    assert res.status_code == 401
    assert res.json()["message"] == "Account is deactivated"


async def test_update_profile(client, alice, bob, headers):
    res = await client.put(PROFILE_URL, json={"first_name": "Alicia", "role": "admin"}, headers=headers(alice))
    assert res.status_code == 200
    user = res.json()["data"]["user"]
    assert user["first_name"] == "Alicia"
    assert user["role"] == "user"

    clash = await client.put(PROFILE_URL, json={"email": "bob@example.com"}, headers=headers(alice))
    assert clash.status_code == 400
    assert clash.json()["message"] == "Another user with this email already exists"


async def test_update_profile_without_fields(client, alice, headers):
    res = await client.put(PROFILE_URL, json={"unknown": "value"}, headers=headers(alice))
    assert res.status_code == 400
    assert res.json()["message"] == "No valid fields to update"


async def test_change_password(client, alice, headers):
    wrong = await client.put(
        "/api/auth/change-password",
        json={"current_password": "bad-password", "new_password": "newsecret"},
        headers=headers(alice),
    )
    assert wrong.status_code == 400
    assert wrong.json()["message"] == "Current password is incorrect"

    res = await client.put(
        "/api/auth/change-password",
        json={"current_password": "secret123", "new_password": "newsecret"},
        headers=headers(alice),
    )
    assert res.status_code == 200

    old = await client.post(LOGIN_URL, json={"email": "alice@example.com", "password": "secret123"})
    assert old.status_code == 401
    new = await client.post(LOGIN_URL, json={"email": "alice@example.com", "password": "newsecret"})
    assert new.status_code == 200


async def test_logout(client, alice, headers):
    res = await client.post("/api/auth/logout", headers=headers(alice))
    assert res.status_code == 200
    assert res.json() == {"status": "success", "message": "Logout successful"}
