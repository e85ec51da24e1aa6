from datetime import timedelta

import jwt

from kobciye.core.enum import AppRole
from kobciye.core.settings import settings
from kobciye.libs.formats.datetime import now_tzinfo


async def test_register_creates_student_with_empty_wallet(api):
    user = await api.register(email="amina@kobciye.so")

    profile = (await api.client.get("/api/v1/me/profile", headers=user["headers"])).json()
    roles = (await api.client.get("/api/v1/me/roles", headers=user["headers"])).json()
    me = (await api.client.get("/api/v1/auth/me", headers=user["headers"])).json()

    assert profile["credits"] == 0
    assert roles == {"roles": ["student"], "effective_role": "student"}
    assert me["email"] == "amina@kobciye.so"


async def test_duplicate_email_conflicts(api, client):
    await api.register(email="dup@kobciye.so")

    resp = await client.post(
        "/api/v1/auth/register", json={"email": "dup@kobciye.so", "password": "another1"}
    )

    assert resp.status_code == 409


async def test_wrong_password_is_unauthorized(api, client):
    await api.register(email="sahra@kobciye.so")

    resp = await client.post(
        "/api/v1/auth/login", json={"email": "sahra@kobciye.so", "password": "nope-nope"}
    )

    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid email or password"


async def test_login_sets_cookie_usable_by_browsers(api, client):
    await api.register(email="cookie@kobciye.so")

    await client.post(
        "/api/v1/auth/login", json={"email": "cookie@kobciye.so", "password": "secret123"}
    )
    me = await client.get("/api/v1/auth/me")
    await client.post("/api/v1/auth/logout")
    after = await client.get("/api/v1/auth/me")

    assert me.status_code == 200
    assert after.status_code == 401


async def test_missing_or_bad_token(client):
    assert (await client.get("/api/v1/me/profile")).status_code == 401
    bad = await client.get("/api/v1/me/profile", headers={"Authorization": "Bearer junk"})
    assert bad.status_code == 401


async def test_effective_role_is_highest_priority(api):
    user = await api.register(roles=[AppRole.INSTRUCTOR, AppRole.ADMIN])

    roles = (await api.client.get("/api/v1/me/roles", headers=user["headers"])).json()

    assert roles["effective_role"] == "admin"
    assert sorted(roles["roles"]) == ["admin", "instructor", "student"]


async def test_profile_update_only_touches_sent_fields(api):
    user = await api.register()
    await api.client.patch(
        "/api/v1/me/profile", json={"full_name": "Faadumo Ali"}, headers=user["headers"]
    )

    resp = await api.client.patch(
        "/api/v1/me/profile", json={"phone": "+252610000000"}, headers=user["headers"]
    )

    assert resp.json()["full_name"] == "Faadumo Ali"
    assert resp.json()["phone"] == "+252610000000"


async def test_registrations_can_be_closed(api, client):
    admin = await api.register(roles=[AppRole.ADMIN])
    await client.put(
        "/api/v1/admin/settings/general",
        json={"value": {"allow_registrations": False}},
        headers=admin["headers"],
    )

    resp = await client.post(
        "/api/v1/auth/register", json={"email": "late@kobciye.so", "password": "secret123"}
    )

    assert resp.status_code == 403


async def test_request_id_is_echoed_or_generated(api, client):
    user = await api.register(email="trace@kobciye.so")

    given = await client.get("/api/v1/me/profile", headers={**user["headers"], "X-Request-ID": "req-42"})
    generated = await client.get("/api/v1/me/profile", headers=user["headers"])

    assert given.headers["x-request-id"] == "req-42"
    assert len(generated.headers["x-request-id"]) == 12


async def test_tokens_without_access_type_are_rejected(api, client):
    user = await api.register(email="forged@kobciye.so")
    forged = jwt.encode(
        {"sub": str(user["id"]), "exp": now_tzinfo() + timedelta(minutes=5)},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )

    resp = await client.get("/api/v1/me/profile", headers={"Authorization": f"Bearer {forged}"})

    assert resp.status_code == 401


async def test_change_password_replaces_the_old_one(api, client):
    user = await api.register(email="ifrah@kobciye.so")

    resp = await client.post(
        "/api/v1/auth/change-password",
        json={"current_password": "secret123", "new_password": "fresh-pass"},
        headers=user["headers"],
    )
    old = await client.post(
        "/api/v1/auth/login", json={"email": "ifrah@kobciye.so", "password": "secret123"}
    )
    new = await client.post(
        "/api/v1/auth/login", json={"email": "ifrah@kobciye.so", "password": "fresh-pass"}
    )

    assert resp.status_code == 200
    assert old.status_code == 401
    assert new.status_code == 200


async def test_change_password_rejects_wrong_current_password(api, client):
    user = await api.register(email="nimco@kobciye.so")

    resp = await client.post(
        "/api/v1/auth/change-password",
        json={"current_password": "not-mine", "new_password": "fresh-pass"},
        headers=user["headers"],
    )
    still = await client.post(
        "/api/v1/auth/login", json={"email": "nimco@kobciye.so", "password": "secret123"}
    )

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Current password is incorrect"
    assert still.status_code == 200


async def test_change_password_needs_a_session_and_a_valid_password(api, client):
    user = await api.register()
    payload = {"current_password": "secret123", "new_password": "abc"}

    anonymous = await client.post(
        "/api/v1/auth/change-password",
        json={"current_password": "secret123", "new_password": "fresh-pass"},
    )
    too_short = await client.post(
        "/api/v1/auth/change-password", json=payload, headers=user["headers"]
    )

    assert anonymous.status_code == 401
    assert too_short.status_code == 422
