import uuid

from sqlalchemy import select

from localmarket.models.audit_log import AuditLog
from localmarket.models.product import ProductInterest
from localmarket.services import interest_service


def _signup(client, email: str) -> str:
    res = client.post(
        "/auth/signup",
        json={"email": email, "password": "password123", "first_name": "Test", "last_name": "User"},
    )
    assert res.status_code == 200, res.text
    return res.json()["access_token"]


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _vendor_business(client, token: str, name: str = "Golden Hour Candles") -> str:
    res = client.post(
        "/vendors/signup",
        json={
            "business_name": name,
            "business_category": "home-decor",
            "contact_name": "Maya Lopez",
            "email": "maya@goldenhour.com",
            "phone": "5105550142",
            "description": "Hand-poured soy candles with local botanicals.",
            "address": "410 Broadway",
            "city": "Oakland",
            "zip_code": "94607",
            "terms_accepted": True,
        },
        headers=_auth_headers(token),
    )
    assert res.status_code == 200, res.text
    return res.json()["business_id"]


def _create_event(client, token: str, **overrides) -> dict:
    payload = {
        "name": "Lake Merritt Night Market",
        "description": "Food, crafts and live music by the lake.",
        "date": "2026-06-12",
        "start_time": "17:00:00",
        "end_time": "22:00:00",
        "location": "Lakeside Park",
        "address": "666 Bellevue Ave",
        "city": "Oakland",
        "lat": 37.8087,
        "lng": -122.258,
    }
    payload.update(overrides)
    res = client.post("/events", json=payload, headers=_auth_headers(token))
    assert res.status_code == 200, res.text
    return res.json()


def _accepted_vendor_at_event(client):
    organizer = _signup(client, "organizer@example.com")
    vendor = _signup(client, "vendor@example.com")
    business_id = _vendor_business(client, vendor)
    event = _create_event(client, organizer)

    invite = client.post(
        f"/events/{event['id']}/vendors",
        json={"business_id": business_id},
        headers=_auth_headers(organizer),
    )
    assert invite.status_code == 200, invite.text
    accepted = client.patch(
        f"/businesses/{business_id}/event-invitations/{invite.json()['invitation_id']}",
        json={"status": "accepted"},
        headers=_auth_headers(vendor),
    )
    assert accepted.status_code == 200, accepted.text
    return organizer, vendor, business_id, event


def _create_product(client, token: str, business_id: str, name: str = "Cedar & Sage Candle") -> str:
    res = client.post(
        f"/businesses/{business_id}/products",
        json={"name": name, "description": "8oz soy candle.", "price": 24},
        headers=_auth_headers(token),
    )
    assert res.status_code == 200, res.text
    return res.json()["id"]


def test_event_search_filters_and_ordering(test_context):
    client, _ = test_context
    organizer = _signup(client, "organizer@example.com")

    late = _create_event(client, organizer, name="Uptown Art Walk", description="Galleries open late.", date="2026-06-12")
    early = _create_event(client, organizer, name="Jack London Flea", date="2026-06-05", start_time="09:00:00", end_time="15:00:00")
    _create_event(client, organizer, name="Berkeley Makers Fair", city="Berkeley", date="2026-06-08")

    oakland = client.get("/events", params={"city": "Oakland"})
    assert oakland.status_code == 200
    body = oakland.json()
    assert [item["id"] for item in body["items"]] == [early["id"], late["id"]]
    assert body["pagination"]["total"] == 2
    assert body["pagination"]["has_next"] is False

    by_text = client.get("/events", params={"q": "GALLERIES"})
    assert [item["id"] for item in by_text.json()["items"]] == [late["id"]]

    upcoming = client.get("/events", params={"from_date": "2026-06-08"})
    assert [item["name"] for item in upcoming.json()["items"]] == ["Berkeley Makers Fair", "Uptown Art Walk"]

    paged = client.get("/events", params={"limit": 1})
    assert paged.json()["pagination"]["has_next"] is True
    assert paged.json()["items"][0]["id"] == early["id"]

    cities = client.get("/events/cities")
    assert cities.json()["items"] == ["Berkeley", "Oakland"]

    single = client.get(f"/events/{late['id']}")
    assert single.status_code == 200
    assert single.json()["lat"] == 37.8087

    assert client.get("/events/not-an-event").status_code == 404


def test_event_create_validates_time_window_and_coordinates(test_context):
    client, _ = test_context
    organizer = _signup(client, "organizer@example.com")

    backwards = client.post(
        "/events",
        json={
            "name": "Backwards Market",
            "date": "2026-06-12",
            "start_time": "18:00:00",
            "end_time": "17:00:00",
            "location": "Lakeside Park",
            "address": "666 Bellevue Ave",
            "city": "Oakland",
        },
        headers=_auth_headers(organizer),
    )
    assert backwards.status_code == 422

    off_map = client.post(
        "/events",
        json={
            "name": "Off Map Market",
            "date": "2026-06-12",
            "start_time": "17:00:00",
            "end_time": "18:00:00",
            "location": "Nowhere",
            "address": "1 Nowhere St",
            "city": "Oakland",
            "lat": 123.0,
        },
        headers=_auth_headers(organizer),
    )
    assert off_map.status_code == 422


def test_event_vendor_invitation_lifecycle(test_context):
    client, _ = test_context
    organizer = _signup(client, "organizer@example.com")
    vendor = _signup(client, "vendor@example.com")
    business_id = _vendor_business(client, vendor)
    event = _create_event(client, organizer)
    invite_path = f"/events/{event['id']}/vendors"

    not_creator = client.post(invite_path, json={"business_id": business_id}, headers=_auth_headers(vendor))
    assert not_creator.status_code == 403

    invited = client.post(invite_path, json={"business_id": business_id}, headers=_auth_headers(organizer))
    assert invited.status_code == 200, invited.text
    assert invited.json()["status"] == "invited"
    invitation_id = invited.json()["invitation_id"]

    duplicate = client.post(invite_path, json={"business_id": business_id}, headers=_auth_headers(organizer))
    assert duplicate.status_code == 409

    listed = client.get(invite_path)
    assert [item["business_name"] for item in listed.json()["items"]] == ["Golden Hour Candles"]

    inbox = client.get(f"/businesses/{business_id}/event-invitations", headers=_auth_headers(vendor))
    assert inbox.status_code == 200
    assert inbox.json()["items"][0]["event"]["id"] == event["id"]

    outsider = client.get(f"/businesses/{business_id}/event-invitations", headers=_auth_headers(organizer))
    assert outsider.status_code == 403

    respond_path = f"/businesses/{business_id}/event-invitations/{invitation_id}"
    confirmed = client.patch(respond_path, json={"status": "confirmed"}, headers=_auth_headers(vendor))
    assert confirmed.status_code == 200, confirmed.text
    assert confirmed.json()["status"] == "accepted"

    back = client.patch(respond_path, json={"status": "invited"}, headers=_auth_headers(vendor))
    assert back.status_code == 400

    declined = client.patch(respond_path, json={"status": "declined"}, headers=_auth_headers(vendor))
    assert declined.json()["status"] == "declined"

    reopen = client.patch(respond_path, json={"status": "accepted"}, headers=_auth_headers(vendor))
    assert reopen.status_code == 400
    assert reopen.json()["error"]["message"] == "Cannot transition event invitation from declined to accepted"


def test_showcase_requires_accepted_invitation(test_context):
    client, _ = test_context
    organizer = _signup(client, "organizer@example.com")
    vendor = _signup(client, "vendor@example.com")
    business_id = _vendor_business(client, vendor)
    event = _create_event(client, organizer)
    product_id = _create_product(client, vendor, business_id)
    showcase_path = f"/businesses/{business_id}/events/{event['id']}/products"

    not_invited = client.put(showcase_path, json={"product_ids": [product_id]}, headers=_auth_headers(vendor))
    assert not_invited.status_code == 400

    invitation_id = client.post(
        f"/events/{event['id']}/vendors",
        json={"business_id": business_id},
        headers=_auth_headers(organizer),
    ).json()["invitation_id"]

    still_invited = client.put(showcase_path, json={"product_ids": [product_id]}, headers=_auth_headers(vendor))
    assert still_invited.status_code == 400

    client.patch(
        f"/businesses/{business_id}/event-invitations/{invitation_id}",
        json={"status": "accepted"},
        headers=_auth_headers(vendor),
    )
    showcased = client.put(
        showcase_path,
        json={"product_ids": [product_id, product_id]},
        headers=_auth_headers(vendor),
    )
    assert showcased.status_code == 200, showcased.text
    assert showcased.json()["product_ids"] == [product_id]

    read_back = client.get(showcase_path, headers=_auth_headers(vendor))
    assert read_back.json()["product_ids"] == [product_id]


def test_showcase_rejects_products_from_other_businesses(test_context):
    client, _ = test_context
    _, vendor, business_id, event = _accepted_vendor_at_event(client)
    other_vendor = _signup(client, "other@example.com")
    other_business_id = _vendor_business(client, other_vendor, name="Other Goods")
    foreign_product = _create_product(client, other_vendor, other_business_id)

    res = client.put(
        f"/businesses/{business_id}/events/{event['id']}/products",
        json={"product_ids": [foreign_product]},
        headers=_auth_headers(vendor),
    )
    assert res.status_code == 400
    assert res.json()["error"]["message"] == "Products must belong to this business"


def test_create_and_showcase_product_in_one_step(test_context):
    client, _ = test_context
    _, vendor, business_id, event = _accepted_vendor_at_event(client)

    res = client.post(
        f"/businesses/{business_id}/events/{event['id']}/products",
        json={"name": "Lavender Candle", "price": "18.50"},
        headers=_auth_headers(vendor),
    )
    assert res.status_code == 200, res.text

    public = client.get(f"/events/{event['id']}/products")
    assert [item["name"] for item in public.json()["items"]] == ["Lavender Candle"]

    catalog = client.get(f"/businesses/{business_id}/products")
    assert [item["name"] for item in catalog.json()["items"]] == ["Lavender Candle"]


def test_interest_toggle_and_counts(test_context):
    client, _ = test_context
    _, vendor, business_id, event = _accepted_vendor_at_event(client)
    product_id = _create_product(client, vendor, business_id)
    client.put(
        f"/businesses/{business_id}/events/{event['id']}/products",
        json={"product_ids": [product_id]},
        headers=_auth_headers(vendor),
    )
    shopper = _signup(client, "shopper@example.com")
    toggle_path = f"/events/{event['id']}/products/{product_id}/interest/toggle"

    anonymous = client.get(f"/events/{event['id']}/products")
    assert anonymous.status_code == 200
    item = anonymous.json()["items"][0]
    assert item["interest_count"] == 0
    assert item["interested"] is False
    assert item["business_name"] == "Golden Hour Candles"

    assert client.post(toggle_path).status_code == 401

    first = client.post(toggle_path, headers=_auth_headers(shopper))
    assert first.status_code == 200, first.text
    assert first.json() == {
        "product_id": product_id,
        "event_id": event["id"],
        "interested": True,
        "interest_count": 1,
    }

    second = client.post(toggle_path, headers=_auth_headers(shopper))
    assert second.json()["interested"] is False
    assert second.json()["interest_count"] == 0

    interest_path = f"/events/{event['id']}/products/{product_id}/interest"
    for _ in range(2):
        marked = client.put(interest_path, headers=_auth_headers(shopper))
        assert marked.json()["interest_count"] == 1

    vendor_interest = client.put(interest_path, headers=_auth_headers(vendor))
    assert vendor_interest.json()["interest_count"] == 2

    mine = client.get(f"/events/{event['id']}/products", headers=_auth_headers(shopper))
    assert mine.json()["items"][0]["interested"] is True
    assert mine.json()["items"][0]["interest_count"] == 2

    still_anonymous = client.get(f"/events/{event['id']}/products")
    assert still_anonymous.json()["items"][0]["interested"] is False

    removed = client.delete(interest_path, headers=_auth_headers(shopper))
    assert removed.json() == {
        "product_id": product_id,
        "event_id": event["id"],
        "interested": False,
        "interest_count": 1,
    }


def test_interest_requires_showcased_product(test_context):
    client, _ = test_context
    _, vendor, business_id, event = _accepted_vendor_at_event(client)
    product_id = _create_product(client, vendor, business_id)

    res = client.post(
        f"/events/{event['id']}/products/{product_id}/interest/toggle",
        headers=_auth_headers(vendor),
    )
    assert res.status_code == 404
    assert res.json()["error"]["message"] == "Product is not showcased at this event"


def test_vendor_dashboard_summarises_interest(test_context):
    client, _ = test_context
    organizer, vendor, business_id, event = _accepted_vendor_at_event(client)
    candle = _create_product(client, vendor, business_id, name="Cedar Candle")
    soap = _create_product(client, vendor, business_id, name="Oat Soap")
    _create_product(client, vendor, business_id, name="Unlisted Wax Melt")
    client.put(
        f"/businesses/{business_id}/events/{event['id']}/products",
        json={"product_ids": [candle, soap]},
        headers=_auth_headers(vendor),
    )

    for email in ("one@example.com", "two@example.com"):
        shopper = _signup(client, email)
        client.put(f"/events/{event['id']}/products/{soap}/interest", headers=_auth_headers(shopper))
    client.put(f"/events/{event['id']}/products/{candle}/interest", headers=_auth_headers(organizer))

    res = client.get(f"/businesses/{business_id}/dashboard", headers=_auth_headers(vendor))
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["product_count"] == 3
    assert body["event_count"] == 1
    assert body["total_interest"] == 3
    assert [(row["product_name"], row["interest_count"]) for row in body["rows"]] == [
        ("Oat Soap", 2),
        ("Cedar Candle", 1),
    ]

    outsider = client.get(f"/businesses/{business_id}/dashboard", headers=_auth_headers(organizer))
    assert outsider.status_code == 403


def test_duplicate_interest_insert_counts_as_already_interested(test_context, monkeypatch):
    client, session_local = test_context
    _, vendor, business_id, event = _accepted_vendor_at_event(client)
    product_id = _create_product(client, vendor, business_id)
    client.put(
        f"/businesses/{business_id}/events/{event['id']}/products",
        json={"product_ids": [product_id]},
        headers=_auth_headers(vendor),
    )
    shopper = _signup(client, "shopper@example.com")
    shopper_id = client.get("/auth/me", headers=_auth_headers(shopper)).json()["id"]

    # Another request records the interest after this one has looked for it.
    with session_local() as db:
        db.add(ProductInterest(id=str(uuid.uuid4()), event_id=event["id"], product_id=product_id, user_id=shopper_id))
        db.commit()

    real_find = interest_service._find_interest
    lookups = []

    def find_missing_first(db, **kwargs):
        lookups.append(kwargs)
        if len(lookups) == 1:
            return None
        return real_find(db, **kwargs)

    monkeypatch.setattr(interest_service, "_find_interest", find_missing_first)

    res = client.put(
        f"/events/{event['id']}/products/{product_id}/interest",
        headers=_auth_headers(shopper),
    )
    assert res.status_code == 200, res.text
    assert res.json()["interested"] is True
    assert res.json()["interest_count"] == 1

    with session_local() as db:
        rows = db.execute(select(ProductInterest).where(ProductInterest.user_id == shopper_id)).scalars().all()
        assert len(rows) == 1


def test_declining_invitation_withdraws_showcase(test_context):
    client, session_local = test_context
    _, vendor, business_id, event = _accepted_vendor_at_event(client)
    product_id = _create_product(client, vendor, business_id)
    client.put(
        f"/businesses/{business_id}/events/{event['id']}/products",
        json={"product_ids": [product_id]},
        headers=_auth_headers(vendor),
    )
    assert len(client.get(f"/events/{event['id']}/products").json()["items"]) == 1

    invitation_id = client.get(
        f"/businesses/{business_id}/event-invitations", headers=_auth_headers(vendor)
    ).json()["items"][0]["invitation_id"]
    declined = client.patch(
        f"/businesses/{business_id}/event-invitations/{invitation_id}",
        json={"status": "declined"},
        headers=_auth_headers(vendor),
    )
    assert declined.status_code == 200, declined.text
    assert declined.json()["status"] == "declined"

    assert client.get(f"/events/{event['id']}/products").json()["items"] == []
    shopper = _signup(client, "shopper@example.com")
    toggle = client.post(
        f"/events/{event['id']}/products/{product_id}/interest/toggle",
        headers=_auth_headers(shopper),
    )
    assert toggle.status_code == 404
    assert toggle.json()["error"]["message"] == "Product is not showcased at this event"

    catalog = client.get(f"/businesses/{business_id}/products")
    assert [item["id"] for item in catalog.json()["items"]] == [product_id]

    with session_local() as db:
        entries = db.execute(select(AuditLog).where(AuditLog.target_id == invitation_id)).scalars().all()
        decline = next(entry for entry in entries if (entry.metadata_json or {}).get("to") == "declined")
        assert decline.metadata_json["showcase_removed"] == 1
