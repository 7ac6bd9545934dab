import asyncio

from conftest import FakeMailjet
from core.base.models import Subscriber
from core.services.email_service import EmailService, build_unsubscribe_url, BATCH_SIZE


def make_subscribers(count):
    return [Subscriber(uid=f"sub_{i}", email=f"reader{i}@example.com") for i in range(count)]


def test_build_unsubscribe_url_percent_encodes_token():
    assert build_unsubscribe_url("a.b/c", "https://example.com") == "https://example.com/unsubscribe/a.b%2Fc"


def test_message_carries_recipient_specific_link(token_service, mailjet):
    service = EmailService(token_service, mailjet)
    message = service.compose_newsletter_message(
        Subscriber(uid="sub_123", email="a@example.com", name="Ada"), "Subject", "Body"
    )
    assert message["To"] == [{"Email": "a@example.com", "Name": "Ada"}]
    assert message["Subject"] == "Subject"
    assert "https://example.com/unsubscribe/" in message["HTMLPart"]
    assert "Unsubscribe: https://example.com/unsubscribe/" in message["TextPart"]


def test_newsletter_is_sent_in_batches(token_service):
    mailjet = FakeMailjet()
    service = EmailService(token_service, mailjet)
    result = asyncio.run(service.send_newsletter("Subject", "Body", make_subscribers(BATCH_SIZE * 2 + 3)))
    assert [len(call["Messages"]) for call in mailjet.calls] == [BATCH_SIZE, BATCH_SIZE, 3]
    assert result.sent == result.total == BATCH_SIZE * 2 + 3


def test_failed_batch_counts_as_unsent(token_service):
    mailjet = FakeMailjet(fail_batches={1})
    service = EmailService(token_service, mailjet)
    result = asyncio.run(service.send_newsletter("Subject", "Body", make_subscribers(BATCH_SIZE + 10)))
    assert len(mailjet.calls) == 2
    assert result.sent == BATCH_SIZE
    assert result.total == BATCH_SIZE + 10


def test_no_subscribers_sends_nothing(token_service, mailjet):
    service = EmailService(token_service, mailjet)
    result = asyncio.run(service.send_newsletter("Subject", "Body", []))
    assert mailjet.calls == []
    assert (result.sent, result.total) == (0, 0)
