from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update

from localmarket.models.auth_token import PasswordResetToken, RefreshToken
from localmarket.models.profile import Profile
from localmarket.models.user import User


def _signup(client, *, email: str, password: str = "password123", first_name: str = "Maya"):
    return client.post(
        "/auth/signup",
        json={
            "email": email,
            "password": password,
            "first_name": first_name,
            "last_name": "Lopez",
        },
    )


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def test_signup_creates_user_and_profile(test_context):
    client, session_local = test_context

    res = _signup(client, email="Maya@Example.com")
    assert res.status_code == 200, res.text
    tokens = res.json()
    assert tokens["token_type"] == "bearer"

    me = client.get("/auth/me", headers=_auth_headers(tokens["access_token"]))
    assert me.status_code == 200, me.text
    body = me.json()
    assert body["email"] == "maya@example.com"
    assert body["first_name"] == "Maya"
    assert body["role"] == "user"
    assert body["is_vendor"] is False
    assert body["vendor_id"] is None

    with session_local() as db:
        user = db.execute(select(User).where(User.email == "maya@example.com")).scalar_one()
        profile = db.get(Profile, user.id)
        assert profile is not None
        assert profile.role == "user"


def test_signup_rejects_duplicate_email_and_short_password(test_context):
    client, _ = test_context

    assert _signup(client, email="dup@example.com").status_code == 200
    duplicate = _signup(client, email="DUP@example.com")
    assert duplicate.status_code == 400
    assert duplicate.json()["error"]["message"] == "Email already registered"

    short = _signup(client, email="short@example.com", password="abc")
    assert short.status_code == 422
    assert short.json()["error"]["code"] == "validation_error"


def test_bootstrap_admin_email_gets_admin_role(test_context):
    client, _ = test_context

    res = _signup(client, email="admin@example.com")
    assert res.status_code == 200, res.text

    me = client.get("/auth/me", headers=_auth_headers(res.json()["access_token"]))
    assert me.json()["role"] == "admin"


def test_protected_endpoints_require_token(test_context):
    client, _ = test_context

    for method, path in (
        ("get", "/auth/me"),
        ("get", "/vendors/me"),
        ("post", "/businesses"),
        ("post", "/events"),
        ("post", "/business-invites/redeem"),
    ):
        res = getattr(client, method)(path)
        assert res.status_code == 401, (path, res.text)
        assert res.json()["error"]["code"] == "unauthorized"
        assert res.headers.get("X-Request-ID")


def test_login_refresh_rotation_and_logout(test_context):
    client, session_local = test_context
    _signup(client, email="rotate@example.com")

    login = client.post("/auth/login", json={"email": "rotate@example.com", "password": "password123"})
    assert login.status_code == 200, login.text
    first_refresh = login.json()["refresh_token"]

    refreshed = client.post("/auth/refresh", json={"refresh_token": first_refresh})
    assert refreshed.status_code == 200, refreshed.text
    second_refresh = refreshed.json()["refresh_token"]
    assert second_refresh != first_refresh

    reused = client.post("/auth/refresh", json={"refresh_token": first_refresh})
    assert reused.status_code == 401

    logout = client.post("/auth/logout", json={"refresh_token": second_refresh})
    assert logout.status_code == 200
    assert logout.json() == {"ok": True}

    after_logout = client.post("/auth/refresh", json={"refresh_token": second_refresh})
    assert after_logout.status_code == 401

    with session_local() as db:
        active = db.execute(
            select(RefreshToken).where(RefreshToken.revoked_at.is_(None))
        ).scalars().all()
        # Only the token issued at signup is still active.
        assert len(active) == 1


def test_swagger_token_endpoint_accepts_form_login(test_context):
    client, _ = test_context
    _signup(client, email="form@example.com")

    res = client.post(
        "/auth/token",
        data={"username": "form@example.com", "password": "password123"},
    )
    assert res.status_code == 200, res.text
    assert res.json()["access_token"]


def test_login_rate_limit_locks_after_repeated_failures(test_context):
    client, _ = test_context
    _signup(client, email="locked@example.com")

    for _ in range(5):
        res = client.post("/auth/login", json={"email": "locked@example.com", "password": "wrong-pass"})
        assert res.status_code == 401

    blocked = client.post("/auth/login", json={"email": "locked@example.com", "password": "password123"})
    assert blocked.status_code == 429
    assert blocked.json()["error"]["code"] == "rate_limited"
    assert int(blocked.headers["Retry-After"]) > 0


def test_update_profile_and_change_password(test_context):
    client, _ = test_context
    token = _signup(client, email="names@example.com").json()["access_token"]

    patched = client.patch(
        "/auth/me",
        json={"first_name": "Rosa"},
        headers=_auth_headers(token),
    )
    assert patched.status_code == 200, patched.text
    assert patched.json()["first_name"] == "Rosa"
    assert patched.json()["last_name"] == "Lopez"

    empty = client.patch("/auth/me", json={}, headers=_auth_headers(token))
    assert empty.status_code == 422

    wrong = client.post(
        "/auth/change-password",
        json={"current_password": "nope-nope", "new_password": "another-pass-1"},
        headers=_auth_headers(token),
    )
    assert wrong.status_code == 401

    changed = client.post(
        "/auth/change-password",
        json={"current_password": "password123", "new_password": "another-pass-1"},
        headers=_auth_headers(token),
    )
    assert changed.status_code == 200, changed.text

    relogin = client.post("/auth/login", json={"email": "names@example.com", "password": "another-pass-1"})
    assert relogin.status_code == 200


def test_password_reset_flow(test_context, monkeypatch):
    client, session_local = test_context
    _signup(client, email="reset@example.com")

    sent: dict = {}

    def fake_send_password_reset_email(*, recipient_email, reset_token, expires_at):
        sent["recipient_email"] = recipient_email
        sent["reset_token"] = reset_token
        from localmarket.services.email_service import EmailDeliveryResult

        return EmailDeliveryResult(status="sent")

    monkeypatch.setattr(
        "localmarket.routers.auth.send_password_reset_email",
        fake_send_password_reset_email,
    )

    unknown = client.post("/auth/password-reset/request", json={"email": "nobody@example.com"})
    assert unknown.status_code == 200
    assert unknown.json() == {"ok": True}
    assert sent == {}

    requested = client.post("/auth/password-reset/request", json={"email": "reset@example.com"})
    assert requested.status_code == 200
    assert sent["recipient_email"] == "reset@example.com"
    reset_token = sent["reset_token"]

    with session_local() as db:
        stored = db.execute(select(PasswordResetToken)).scalar_one()
        assert stored.token_hash != reset_token

    confirmed = client.post(
        "/auth/password-reset/confirm",
        json={"reset_token": reset_token, "new_password": "brand-new-pass"},
    )
    assert confirmed.status_code == 200, confirmed.text

    reused = client.post(
        "/auth/password-reset/confirm",
        json={"reset_token": reset_token, "new_password": "another-new-pass"},
    )
    assert reused.status_code == 400

    login = client.post("/auth/login", json={"email": "reset@example.com", "password": "brand-new-pass"})
    assert login.status_code == 200

    with session_local() as db:
        active_before_login = db.execute(
            select(RefreshToken).where(RefreshToken.revoked_at.is_(None))
        ).scalars().all()
        # Signup token was revoked by the reset; only the new login token remains.
        assert len(active_before_login) == 1


def test_password_reset_rejects_expired_token(test_context, monkeypatch):
    client, session_local = test_context
    _signup(client, email="late@example.com")

    captured: list[str] = []

    def fake_send_password_reset_email(*, recipient_email, reset_token, expires_at):
        captured.append(reset_token)
        from localmarket.services.email_service import EmailDeliveryResult

        return EmailDeliveryResult(status="not_configured", detail="SMTP not configured")

    monkeypatch.setattr(
        "localmarket.routers.auth.send_password_reset_email",
        fake_send_password_reset_email,
    )
    client.post("/auth/password-reset/request", json={"email": "late@example.com"})

    with session_local() as db:
        db.execute(
            update(PasswordResetToken).values(
                expires_at=datetime.now(timezone.utc) - timedelta(minutes=1)
            )
        )
        db.commit()

    res = client.post(
        "/auth/password-reset/confirm",
        json={"reset_token": captured[0], "new_password": "brand-new-pass"},
    )
    assert res.status_code == 400
    assert res.json()["error"]["message"] == "Reset token is invalid or expired"
