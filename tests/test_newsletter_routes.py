import re
from urllib.parse import unquote

import pytest

from core.base.models import Subscriber
from core.routes.newsletter_router import UNSUBSCRIBED_MESSAGE

INVALID_LINK = "This unsubscribe link is invalid or has expired."


@pytest.fixture
def subscribers(db):
    records = [
        Subscriber(uid="sub_123", email="a@example.com", name="Ada"),
        Subscriber(uid="sub_456", email="b@example.com", name="Bob"),
        Subscriber(uid="sub_789", email="c@example.com", name="Cy", active=False),
    ]
    db["subscribers"].docs.extend(r.model_dump() for r in records)
    return records


def test_subscribe_new_email(client, db):
    response = client.post("/subscribe", json={"email": "reader@example.com", "name": "Reader"})
    assert response.status_code == 201
    assert response.json()["status"] == "created"
    assert db["subscribers"].docs[0]["active"] is True


def test_subscribe_existing_email(client, subscribers):
    response = client.post("/subscribe", json={"email": "a@example.com", "name": "Ada"})
    assert response.status_code == 200
    assert response.json()["message"] == "You are already subscribed!"


def test_subscribe_rejects_invalid_email(client):
    response = client.post("/subscribe", json={"email": "not-an-email", "name": "Reader"})
    assert response.status_code == 422


def test_unsubscribe_twice_returns_same_response(client, token_service, subscribers, db):
    token = token_service.generate_unsubscribe_token("sub_123", "a@example.com")
    first = client.put(f"/unsubscribe/{token}")
    second = client.put(f"/unsubscribe/{token}")
    assert first.status_code == second.status_code == 200
    assert first.json() == second.json() == {"message": UNSUBSCRIBED_MESSAGE, "email": "a@example.com"}
    assert db["subscribers"].docs[0]["active"] is False


def test_token_failures_are_indistinguishable(client, token_service, clock, subscribers):
    token = token_service.generate_unsubscribe_token("sub_123", "a@example.com")
    tampered = token[:-5] + ("AAAAA" if not token.endswith("AAAAA") else "BBBBB")
    garbage = client.put("/unsubscribe/garbage")
    bad_signature = client.put(f"/unsubscribe/{tampered}")
    clock.advance(days=31)
    expired = client.put(f"/unsubscribe/{token}")
    for response in (garbage, bad_signature, expired):
        assert response.status_code == 400
        assert response.json() == {"detail": INVALID_LINK}


def test_unsubscribe_unknown_subscriber(client, token_service):
    token = token_service.generate_unsubscribe_token("sub_missing", "ghost@example.com")
    response = client.put(f"/unsubscribe/{token}")
    assert response.status_code == 404
    assert response.json() == {"detail": "This link is no longer valid."}


def test_unsubscribe_when_datastore_is_down(client, token_service, subscribers, db):
    token = token_service.generate_unsubscribe_token("sub_123", "a@example.com")
    db["subscribers"].down = True
    response = client.put(f"/unsubscribe/{token}")
    assert response.status_code == 503
    assert response.json() == {"detail": "Something went wrong, please try again later."}


def test_unsubscribe_page_success(client, token_service, subscribers):
    token = token_service.generate_unsubscribe_token("sub_123", "a@example.com")
    response = client.get(f"/unsubscribe/{token}")
    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]
    assert "a@example.com has been removed from our newsletter." in response.text


def test_unsubscribe_page_invalid_link(client):
    response = client.get("/unsubscribe/a.b.c")
    assert response.status_code == 400
    assert INVALID_LINK in response.text


def test_send_newsletter_requires_admin_key(client, subscribers, mailjet):
    response = client.post("/newsletter/send", json={"subject": "Hi", "content": "Body"})
    assert response.status_code == 401
    response = client.post(
        "/newsletter/send",
        json={"subject": "Hi", "content": "Body"},
        headers={"X-Admin-Key": "wrong"},
    )
    assert response.status_code == 401
    assert mailjet.calls == []


def test_send_newsletter_to_active_subscribers(client, subscribers, mailjet, token_service, admin_headers):
    response = client.post(
        "/newsletter/send",
        json={"subject": "New post: threat modelling", "content": "Read <this> now"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "sent": 2, "total": 2}

    recipients = {m["To"][0]["Email"]: m for m in mailjet.messages}
    assert set(recipients) == {"a@example.com", "b@example.com"}

    for uid, email in (("sub_123", "a@example.com"), ("sub_456", "b@example.com")):
        html = recipients[email]["HTMLPart"]
        assert "Read &lt;this&gt; now" in html
        link = re.search(r'href="https://example\.com/unsubscribe/([^"]+)"', html).group(1)
        claims = token_service.verify_unsubscribe_token(unquote(link))
        assert (claims.subscriber_id, claims.email) == (uid, email)
