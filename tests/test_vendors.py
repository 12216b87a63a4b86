from fastapi.testclient import TestClient
from sqlalchemy import func, select

from localmarket.core.config import settings
from localmarket.models.audit_log import AuditLog
from localmarket.models.business import Business
from localmarket.models.business_member import BusinessMember
from localmarket.models.profile import Profile
from localmarket.models.vendor import Vendor, VendorLocation


def _signup(client, email: str) -> str:
    res = client.post(
        "/auth/signup",
        json={"email": email, "password": "password123", "first_name": "Maya", "last_name": "Lopez"},
    )
    assert res.status_code == 200, res.text
    return res.json()["access_token"]


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _vendor_payload(**overrides) -> dict:
    payload = {
        "business_name": "Golden Hour Candles",
        "business_category": "home-decor",
        "contact_name": "Maya Lopez",
        "email": "maya@goldenhour.com",
        "phone": "5105550142",
        "website": "https://goldenhour.com",
        "instagram": "@goldenhourcandles",
        "description": "Hand-poured soy candles with local botanicals.",
        "address": "410 Broadway",
        "city": "Oakland",
        "zip_code": "94607",
        "terms_accepted": True,
    }
    payload.update(overrides)
    return payload


def _count(session_local, model) -> int:
    with session_local() as db:
        return int(db.execute(select(func.count()).select_from(model)).scalar_one())


def test_vendor_categories_are_public(test_context):
    client, _ = test_context

    res = client.get("/vendors/categories")
    assert res.status_code == 200
    values = [item["value"] for item in res.json()["items"]]
    assert "food-drink" in values
    assert "other" in values


def test_vendor_signup_creates_business_vendor_and_location(test_context):
    client, session_local = test_context
    token = _signup(client, "maya@example.com")

    res = client.post("/vendors/signup", json=_vendor_payload(), headers=_auth_headers(token))
    assert res.status_code == 200, res.text
    vendor = res.json()
    assert vendor["status"] == "approved"
    assert vendor["business_category"] == "home-decor"
    assert vendor["location"] == {"address": "410 Broadway", "city": "Oakland", "zip_code": "94607"}

    me = client.get("/auth/me", headers=_auth_headers(token)).json()
    assert vendor["id"] == me["id"]
    assert me["is_vendor"] is True
    assert me["vendor_id"] == vendor["id"]
    assert me["business_id"] == vendor["business_id"]

    assert _count(session_local, Business) == 1
    assert _count(session_local, Vendor) == 1
    assert _count(session_local, VendorLocation) == 1

    with session_local() as db:
        member = db.execute(select(BusinessMember)).scalar_one()
        assert member.role == "owner"
        assert member.user_id == me["id"]
        actions = db.execute(select(AuditLog.action)).scalars().all()
        assert "vendor.signup" in actions

    mine = client.get("/vendors/me", headers=_auth_headers(token))
    assert mine.status_code == 200
    assert mine.json()["business_name"] == "Golden Hour Candles"


def test_vendor_signup_twice_conflicts(test_context):
    client, session_local = test_context
    token = _signup(client, "twice@example.com")

    assert client.post("/vendors/signup", json=_vendor_payload(), headers=_auth_headers(token)).status_code == 200
    again = client.post("/vendors/signup", json=_vendor_payload(), headers=_auth_headers(token))
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "conflict"
    assert _count(session_local, Business) == 1


def test_concurrent_vendor_signup_loser_gets_conflict(test_context, monkeypatch):
    client, session_local = test_context
    token = _signup(client, "racer@example.com")
    assert client.post("/vendors/signup", json=_vendor_payload(), headers=_auth_headers(token)).status_code == 200

    # The second request misses the existing row, as if both ran the check at once.
    monkeypatch.setattr("localmarket.services.vendor_service._existing_vendor", lambda db, user_id: None)
    res = client.post("/vendors/signup", json=_vendor_payload(), headers=_auth_headers(token))
    assert res.status_code == 409
    assert res.json()["error"]["message"] == "A vendor profile already exists for this account"

    assert _count(session_local, Business) == 1
    assert _count(session_local, BusinessMember) == 1
    assert _count(session_local, Vendor) == 1
    assert _count(session_local, VendorLocation) == 1


def test_vendor_signup_validates_fields(test_context):
    client, session_local = test_context
    token = _signup(client, "invalid@example.com")

    res = client.post(
        "/vendors/signup",
        json=_vendor_payload(
            phone="555",
            business_category="fireworks",
            terms_accepted=False,
            description="short",
        ),
        headers=_auth_headers(token),
    )
    assert res.status_code == 422
    fields = {detail["field"] for detail in res.json()["error"]["details"]}
    assert {"phone", "business_category", "terms_accepted", "description"} <= fields
    assert _count(session_local, Business) == 0


def test_failed_vendor_signup_leaves_no_partial_records(test_context, monkeypatch):
    client, session_local = test_context
    token = _signup(client, "rollback@example.com")

    def failing_audit(*args, **kwargs):
        raise RuntimeError("audit store unavailable")

    monkeypatch.setattr("localmarket.services.vendor_service.log_audit_event", failing_audit)

    unsafe_client = TestClient(client.app, raise_server_exceptions=False)
    res = unsafe_client.post("/vendors/signup", json=_vendor_payload(), headers=_auth_headers(token))
    assert res.status_code == 500
    assert res.json()["error"]["code"] == "internal_error"

    assert _count(session_local, Business) == 0
    assert _count(session_local, BusinessMember) == 0
    assert _count(session_local, Vendor) == 0
    assert _count(session_local, VendorLocation) == 0
    with session_local() as db:
        profile = db.execute(select(Profile)).scalar_one()
        assert profile.is_vendor is False


def test_vendor_signup_is_pending_without_auto_approve(test_context):
    client, _ = test_context
    settings.vendor_auto_approve = False
    token = _signup(client, "pending@example.com")

    res = client.post("/vendors/signup", json=_vendor_payload(), headers=_auth_headers(token))
    assert res.status_code == 200, res.text
    assert res.json()["status"] == "pending"


def test_update_my_vendor_profile(test_context):
    client, _ = test_context
    token = _signup(client, "update@example.com")

    missing = client.patch("/vendors/me", json={"city": "Berkeley"}, headers=_auth_headers(token))
    assert missing.status_code == 404

    client.post("/vendors/signup", json=_vendor_payload(), headers=_auth_headers(token))

    res = client.patch(
        "/vendors/me",
        json={"city": "Berkeley", "business_category": "art"},
        headers=_auth_headers(token),
    )
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["business_category"] == "art"
    assert body["location"]["city"] == "Berkeley"
    assert body["location"]["address"] == "410 Broadway"

    empty = client.patch("/vendors/me", json={}, headers=_auth_headers(token))
    assert empty.status_code == 422


def test_admin_reviews_vendor_status(test_context):
    client, _ = test_context
    settings.vendor_auto_approve = False
    admin_token = _signup(client, "admin@example.com")
    vendor_token = _signup(client, "review@example.com")
    vendor_id = client.post(
        "/vendors/signup", json=_vendor_payload(), headers=_auth_headers(vendor_token)
    ).json()["id"]

    forbidden = client.get("/admin/vendors", headers=_auth_headers(vendor_token))
    assert forbidden.status_code == 403

    pending = client.get("/admin/vendors", params={"status": "pending"}, headers=_auth_headers(admin_token))
    assert pending.status_code == 200
    assert [item["id"] for item in pending.json()["items"]] == [vendor_id]

    bad_filter = client.get("/admin/vendors", params={"status": "archived"}, headers=_auth_headers(admin_token))
    assert bad_filter.status_code == 400

    path = f"/admin/vendors/{vendor_id}/status"
    rejected = client.patch(path, json={"status": "rejected"}, headers=_auth_headers(admin_token))
    assert rejected.status_code == 200, rejected.text
    assert rejected.json()["status"] == "rejected"

    approved = client.patch(path, json={"status": "Approved"}, headers=_auth_headers(admin_token))
    assert approved.status_code == 200, approved.text
    assert approved.json()["status"] == "approved"

    same = client.patch(path, json={"status": "approved"}, headers=_auth_headers(admin_token))
    assert same.status_code == 200

    back_to_pending = client.patch(path, json={"status": "pending"}, headers=_auth_headers(admin_token))
    assert back_to_pending.status_code == 400
    assert back_to_pending.json()["error"]["message"] == "Cannot transition vendor from approved to pending"

    unknown = client.patch(
        "/admin/vendors/missing-vendor/status",
        json={"status": "approved"},
        headers=_auth_headers(admin_token),
    )
    assert unknown.status_code == 404


def test_admin_sets_platform_role(test_context):
    client, _ = test_context
    admin_token = _signup(client, "admin@example.com")
    user_token = _signup(client, "promote@example.com")
    user_id = client.get("/auth/me", headers=_auth_headers(user_token)).json()["id"]

    denied = client.post(f"/admin/users/{user_id}/role", json={"role": "admin"}, headers=_auth_headers(user_token))
    assert denied.status_code == 403

    res = client.post(f"/admin/users/{user_id}/role", json={"role": "admin"}, headers=_auth_headers(admin_token))
    assert res.status_code == 200, res.text
    assert res.json() == {"user_id": user_id, "role": "admin"}

    now_admin = client.get("/admin/vendors", headers=_auth_headers(user_token))
    assert now_admin.status_code == 200
