"""Registration, login, tokens, profile and account management."""

from conftest import PASSWORD, unique_email


def _register_payload(email, **overrides):
    payload = {
        "email": email,
        "password": PASSWORD,
        "confirmPassword": PASSWORD,
        "name": "Tester",
        "role": "creator",
    }
    payload.update(overrides)
    return payload


def test_register_and_me(client):
    email = unique_email()
    r = client.post("/api/auth/register", json=_register_payload(email.upper()))
    assert r.status_code == 201, f"register failed: {r.status_code} {r.text}"
    data = r.json()
    assert data["tokenType"] == "bearer"
    assert data["user"]["email"] == email

    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['accessToken']}"})
    assert r.status_code == 200
    assert r.json()["id"] == data["user"]["id"]


def test_register_duplicate_email(client):
    email = unique_email()
    assert client.post("/api/auth/register", json=_register_payload(email)).status_code == 201
    r = client.post("/api/auth/register", json=_register_payload(email))
    assert r.status_code == 409
    assert r.json()["error"] == "EMAIL_ALREADY_EXISTS"


def test_register_validation_is_per_field(client):
    r = client.post("/api/auth/register", json=_register_payload(
        "not-an-email", password="weakpass", confirmPassword="other", name="A", role="boss",
    ))
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "VALIDATION_ERROR"
    fields = {e["field"] for e in body["errors"]}
    assert {"email", "password", "name", "role"} <= fields


def test_password_confirmation_must_match(client):
    r = client.post("/api/auth/register", json=_register_payload(unique_email(), confirmPassword="Secreto124"))
    assert r.status_code == 400
    errors = r.json()["errors"]
    assert errors[0]["field"] == "confirmPassword"
    assert "coinciden" in errors[0]["message"]


def test_login_and_lockout(client):
    email = unique_email()
    client.post("/api/auth/register", json=_register_payload(email))

    r = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert r.status_code == 200
    assert r.json()["accessToken"]

    for _ in range(5):
        r = client.post("/api/auth/login", json={"email": email, "password": "Incorrecta1"})
        assert r.status_code == 401

    r = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert r.status_code == 429
    assert r.json()["error"] == "TOO_MANY_REQUESTS"


def test_logout_revokes_token(client, register):
    headers, _ = register()
    assert client.post("/api/auth/logout", headers=headers).status_code == 200
    r = client.get("/api/auth/me", headers=headers)
    assert r.status_code == 401
    assert r.json()["error"] == "TOKEN_REVOKED"


def test_status_never_fails(client, register):
    r = client.get("/api/auth/status")
    assert r.status_code == 200
    assert r.json() == {"authenticated": False, "user": None}

    r = client.get("/api/auth/status", headers={"Authorization": "Bearer garbage"})
    assert r.json()["authenticated"] is False

    headers, user = register()
    r = client.get("/api/auth/status", headers=headers)
    assert r.json()["authenticated"] is True
    assert r.json()["user"]["id"] == user["id"]


def test_profile_includes_family(client, family_of):
    headers, _, family = family_of("Perfil")
    r = client.get("/api/auth/profile", headers=headers)
    assert r.status_code == 200
    profile = r.json()
    assert profile["familyId"] == family["id"]
    assert profile["familyInviteCode"] == family["codigoInvitacion"]
    assert profile["familyRole"] == "admin"
    assert profile["notificationPreferences"] == {"email": True, "recipes": True, "mealPlans": True}


def test_update_profile(client, register):
    headers, user = register()
    new_email = unique_email("nuevo")
    r = client.put("/api/auth/profile", json={
        "name": "Nuevo Nombre",
        "email": new_email,
        "notificationPreferences": {"email": False, "recipes": True, "mealPlans": False},
    }, headers=headers)
    assert r.status_code == 200, r.text
    assert r.json()["name"] == "Nuevo Nombre"
    assert r.json()["email"] == new_email
    assert r.json()["notificationPreferences"]["mealPlans"] is False

    _, other = register("Otro")
    r = client.put("/api/auth/profile", json={"name": "Nuevo", "email": other["email"]}, headers=headers)
    assert r.status_code == 409


def test_change_password(client, register):
    headers, user = register()
    r = client.post("/api/auth/change-password", json={
        "currentPassword": "Equivocada1",
        "newPassword": "Distinta456",
        "confirmPassword": "Distinta456",
    }, headers=headers)
    assert r.status_code == 401

    r = client.post("/api/auth/change-password", json={
        "currentPassword": PASSWORD,
        "newPassword": PASSWORD,
        "confirmPassword": PASSWORD,
    }, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"] == "SAME_PASSWORD"

    r = client.post("/api/auth/change-password", json={
        "currentPassword": PASSWORD,
        "newPassword": "Distinta456",
        "confirmPassword": "Distinta456",
    }, headers=headers)
    assert r.status_code == 200
    new_headers = {"Authorization": f"Bearer {r.json()['accessToken']}"}

    assert client.get("/api/auth/me", headers=headers).status_code == 401
    assert client.get("/api/auth/me", headers=new_headers).status_code == 200
    r = client.post("/api/auth/login", json={"email": user["email"], "password": "Distinta456"})
    assert r.status_code == 200


def test_avatar(client, register):
    headers, _ = register()
    r = client.post("/api/auth/avatar", json={"avatar": "https://example.com/me.png"}, headers=headers)
    assert r.status_code == 200
    assert r.json()["avatar"] == "https://example.com/me.png"

    r = client.post("/api/auth/avatar", json={"avatar": ""}, headers=headers)
    assert r.status_code == 400


def test_delete_account_leaves_family(client, register, family_of):
    a_headers, a_user, family = family_of("Adios")
    b_headers, b_user = register("Bruno")
    client.post("/api/family/join", json={"codigo": family["codigoInvitacion"]}, headers=b_headers)

    r = client.request("DELETE", "/api/auth/account", json={"password": "Incorrecta1"}, headers=a_headers)
    assert r.status_code == 401

    r = client.request("DELETE", "/api/auth/account", json={"password": PASSWORD}, headers=a_headers)
    assert r.status_code == 200
    assert client.get("/api/auth/me", headers=a_headers).status_code == 401

    r = client.get("/api/family", headers=b_headers)
    assert r.status_code == 200
    members = r.json()["members"]
    assert [m["userId"] for m in members] == [b_user["id"]]
    assert members[0]["role"] == "admin"


def test_long_password_is_accepted(client):
    long_password = "Aa1" + "x" * 100
    email = unique_email()
    r = client.post("/api/auth/register", json=_register_payload(
        email, password=long_password, confirmPassword=long_password,
    ))
    assert r.status_code == 201
    r = client.post("/api/auth/login", json={"email": email, "password": long_password})
    assert r.status_code == 200


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert r.json()["database"]["healthy"] is True
