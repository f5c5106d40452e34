from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from ateleslie.models.newsletter import Newsletter
from ateleslie.models.user import User
from ateleslie.services import email_service

from conftest import create_user, fetch_fresh


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    async def fake_send_newsletter(subject, content, recipients, category=None):
        sent.append({"subject": subject, "recipients": list(recipients), "category": category})
        return len(recipients)

    monkeypatch.setattr(email_service, "send_newsletter", fake_send_newsletter)
    return sent


async def add_draft(db, title="Spring news", category=None, **fields):
    newsletter = Newsletter(
        type="newsletter",
        title=title,
        content="Everything happening this spring.",
        category=category,
        status=fields.pop("status", "draft"),
        **fields,
    )
    db.add(newsletter)
    await db.commit()
    await db.refresh(newsletter)
    return newsletter


async def subscribe(client, email, **fields):
    return await client.post("/api/newsletter/subscribe", json={"email": email, **fields})


async def test_subscribe_creates_record(client):
    response = await subscribe(client, "Reader@Example.com", firstName="Reader", interests=["music"])
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["email"] == "reader@example.com"
    assert data["isActive"] is True
    assert data["preferences"] == {"events": True, "news": True, "promotions": False}
    assert data["source"] == "website"


async def test_subscribe_flags_matching_user(client, db, member):
    await subscribe(client, "member@example.com")
    stored = await fetch_fresh(db, select(User).where(User.id == member.id))
    assert stored.newsletter_subscribed is True


async def test_subscribe_validation(client):
    assert (await subscribe(client, "not-an-email")).status_code == 400
    assert (await subscribe(client, "a@example.com", interests=["knitting"])).status_code == 400
    assert (await subscribe(client, "a@example.com", source="billboard")).status_code == 400


async def test_unsubscribe_then_resubscribe(client, db):
    await subscribe(client, "reader@example.com")

    response = await client.post("/api/newsletter/unsubscribe", json={"email": "reader@example.com"})
    assert response.status_code == 200

    record = await fetch_fresh(db, select(Newsletter).where(Newsletter.email == "reader@example.com"))
    assert record.is_active is False
    assert record.unsubscribed_at is not None

    response = await subscribe(client, "reader@example.com")
    assert response.json()["data"]["isActive"] is True
    assert response.json()["data"]["unsubscribedAt"] is None


async def test_unsubscribe_unknown_email(client):
    response = await client.post("/api/newsletter/unsubscribe", json={"email": "ghost@example.com"})
    assert response.status_code == 404


async def test_unsubscribe_subscribed_user_without_record(client, db):
    user = await create_user(db, "fan", "fan@example.com", newsletter_subscribed=True)
    response = await client.post("/api/newsletter/unsubscribe", json={"email": "fan@example.com"})
    assert response.status_code == 200

    stored = await fetch_fresh(db, select(User).where(User.id == user.id))
    assert stored.newsletter_subscribed is False


async def test_toggle_subscription(client, member_headers):
    assert (await client.put("/api/newsletter/subscription")).status_code == 401

    response = await client.put("/api/newsletter/subscription", headers=member_headers)
    assert response.status_code == 200
    assert response.json()["data"] == {"email": "member@example.com", "newsletterSubscribed": True}

    response = await client.put("/api/newsletter/subscription", headers=member_headers)
    assert response.json()["data"]["newsletterSubscribed"] is False


async def test_create_newsletter(client, admin_headers, member_headers):
    payload = {"title": "Autumn news", "content": "Workshops restart in October.", "tags": ["a", "a", "b"]}

    assert (await client.post("/api/newsletter", headers=member_headers, json=payload)).status_code == 403

    response = await client.post("/api/newsletter", headers=admin_headers, json=payload)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["status"] == "draft"
    assert data["tags"] == ["a", "b"]


async def test_create_newsletter_validation(client, admin_headers):
    response = await client.post(
        "/api/newsletter", headers=admin_headers, json={"title": "Hi", "content": "short"}
    )
    assert response.status_code == 400
    assert len(response.json()["errors"]) == 2


async def test_list_newsletters_filters(client, db, admin_headers):
    await add_draft(db, "Draft one", tags=["workshop"])
    await add_draft(db, "Sent one", status="sent", tags=["concert"])

    response = await client.get("/api/newsletter", headers=admin_headers, params={"status": "sent"})
    assert [n["title"] for n in response.json()["data"]["items"]] == ["Sent one"]

    response = await client.get("/api/newsletter", headers=admin_headers, params={"tag": "workshop"})
    assert [n["title"] for n in response.json()["data"]["items"]] == ["Draft one"]


async def test_list_subscribers(client, admin_headers):
    await subscribe(client, "one@example.com")
    await subscribe(client, "two@example.com")
    await client.post("/api/newsletter/unsubscribe", json={"email": "two@example.com"})

    response = await client.get("/api/newsletter/subscribers", headers=admin_headers)
    assert response.json()["data"]["pagination"]["totalItems"] == 2

    response = await client.get("/api/newsletter/subscribers", headers=admin_headers, params={"active": True})
    assert [s["email"] for s in response.json()["data"]["items"]] == ["one@example.com"]


async def test_schedule_newsletter(client, db, admin_headers, scheduler):
    draft = await add_draft(db)
    when = datetime.utcnow() + timedelta(days=1)

    response = await client.post(
        f"/api/newsletter/{draft.id}/schedule",
        headers=admin_headers,
        json={"scheduledDate": when.isoformat()},
    )
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "scheduled"
    assert scheduler.scheduled[0][0] == draft.id


async def test_schedule_rejects_past_date(client, db, admin_headers, scheduler):
    draft = await add_draft(db)
    response = await client.post(
        f"/api/newsletter/{draft.id}/schedule",
        headers=admin_headers,
        json={"scheduledDate": (datetime.utcnow() - timedelta(minutes=5)).isoformat()},
    )
    assert response.status_code == 400
    assert scheduler.scheduled == []


async def test_schedule_rejects_sent_newsletter(client, db, admin_headers):
    sent = await add_draft(db, status="sent")
    response = await client.post(
        f"/api/newsletter/{sent.id}/schedule",
        headers=admin_headers,
        json={"scheduledDate": (datetime.utcnow() + timedelta(days=1)).isoformat()},
    )
    assert response.status_code == 400


async def test_schedule_unknown_newsletter(client, admin_headers):
    response = await client.post(
        "/api/newsletter/9999/schedule",
        headers=admin_headers,
        json={"scheduledDate": (datetime.utcnow() + timedelta(days=1)).isoformat()},
    )
    assert response.status_code == 404


async def test_send_without_recipients(client, db, admin_headers, outbox):
    draft = await add_draft(db)
    response = await client.post(f"/api/newsletter/{draft.id}/send", headers=admin_headers)
    assert response.status_code == 400
    assert outbox == []

    stored = await fetch_fresh(db, select(Newsletter).where(Newsletter.id == draft.id))
    assert stored.status == "draft"


async def test_send_newsletter_once(client, db, admin_headers, outbox):
    draft = await add_draft(db)
    await subscribe(client, "reader@example.com")
    await create_user(db, "fan", "fan@example.com", newsletter_subscribed=True)

    response = await client.post(f"/api/newsletter/{draft.id}/send", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"] == {"recipients": 2, "delivered": 2}
    assert sorted(outbox[0]["recipients"]) == ["fan@example.com", "reader@example.com"]

    stored = await fetch_fresh(db, select(Newsletter).where(Newsletter.id == draft.id))
    assert stored.status == "sent"
    assert stored.sent_at is not None
    assert stored.recipient_count == 2

    again = await client.post(f"/api/newsletter/{draft.id}/send", headers=admin_headers)
    assert again.status_code == 400
    assert len(outbox) == 1


async def test_send_deduplicates_recipients(client, db, admin_headers, outbox):
    await create_user(db, "fan", "fan@example.com", newsletter_subscribed=True)
    await subscribe(client, "fan@example.com")
    draft = await add_draft(db)

    response = await client.post(f"/api/newsletter/{draft.id}/send", headers=admin_headers)
    assert response.json()["data"]["recipients"] == 1


async def test_send_filters_by_category(client, db, admin_headers, outbox):
    await subscribe(client, "music@example.com", interests=["music"])
    await subscribe(client, "arts@example.com", interests=["arts"])
    draft = await add_draft(db, category="arts")

    response = await client.post(f"/api/newsletter/{draft.id}/send", headers=admin_headers)
    assert response.status_code == 200
    assert outbox[0]["recipients"] == ["arts@example.com"]


async def test_send_requires_send_permission(client, db, member_headers):
    draft = await add_draft(db)
    response = await client.post(f"/api/newsletter/{draft.id}/send", headers=member_headers)
    assert response.status_code == 403


async def test_broadcast(client, db, admin_headers, outbox):
    await subscribe(client, "reader@example.com")
    response = await client.post(
        "/api/newsletter/send",
        headers=admin_headers,
        json={"subject": "Flash sale", "content": "Tickets half price today."},
    )
    assert response.status_code == 200
    assert response.json()["data"]["recipients"] == 1
    assert outbox[0]["subject"] == "Flash sale"

    stored = (await db.execute(select(Newsletter).where(Newsletter.title == "Flash sale"))).scalar_one()
    assert stored.status == "sent"


async def test_broadcast_without_recipients(client, admin_headers, outbox):
    response = await client.post(
        "/api/newsletter/send",
        headers=admin_headers,
        json={"subject": "Flash sale", "content": "Tickets half price today."},
    )
    assert response.status_code == 400
    assert outbox == []
