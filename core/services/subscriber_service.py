import logging
from enum import Enum
from typing import Optional
from datetime import datetime, timezone
from core.base.models import Subscriber
from core.repositories.subscriber_repository import SubscriberRepository
from core.services.token_service import TokenService
from core.base.exception import InvalidUnsubscribeLinkError, SubscriberNotFoundError
from core.utils.str import email_digest

logger = logging.getLogger(__name__)

ANONYMIZED_NAME = "Unsubscribed User"

class SubscribeOutcome(Enum):
    Created = "created"
    AlreadyActive = "already_active"
    Reactivated = "reactivated"

class SubscriberService:
    def __init__(self,
        repository: SubscriberRepository,
        token_service: TokenService,
        anonymize_on_unsubscribe: bool = False,
    ):
        self.repository = repository
        self.token_service = token_service
        self.anonymize_on_unsubscribe = anonymize_on_unsubscribe

    async def subscribe(self, email: str, name: Optional[str] = None) -> tuple[SubscribeOutcome, Subscriber]:
        """Create a subscriber, or reactivate an existing inactive one."""
        email = email.strip()
        existing = await self.repository._get_subscriber_by_email(email)
        if existing is None:
            subscriber = await self.repository._create_subscriber(Subscriber(email=email, name=name))
            logger.info("New subscriber %s", subscriber.uid)
            return SubscribeOutcome.Created, subscriber
        if existing.active:
            return SubscribeOutcome.AlreadyActive, existing

        update_data = {"active": True, "unsubscribedAt": None}
        if name:
            update_data["name"] = name
        subscriber = await self.repository._update_subscriber(existing.uid, update_data)
        if not subscriber:
            raise SubscriberNotFoundError(existing.uid)
        logger.info("Reactivated subscriber %s", subscriber.uid)
        return SubscribeOutcome.Reactivated, subscriber

    async def list_active_subscribers(self) -> list[Subscriber]:
        return await self.repository._list_active_subscribers()

    async def unsubscribe(self, token: str) -> Subscriber:
        """
        Deactivate the subscriber named by an unsubscribe token.

        Raises InvalidUnsubscribeLinkError for any token failure,
        SubscriberNotFoundError when no record matches both id and email,
        and lets DatastoreUnavailableError propagate. Repeating the call with
        the same token returns the already inactive record.
        """
        claims = self.token_service.verify_unsubscribe_token(token)
        if claims is None:
            raise InvalidUnsubscribeLinkError()

        subscriber = await self.repository._get_subscriber_by_uid_and_email(claims.subscriber_id, claims.email)
        if subscriber is None:
            raise SubscriberNotFoundError(claims.subscriber_id)
        if not subscriber.active:
            logger.info("Subscriber %s already unsubscribed", subscriber.uid)
            return subscriber

        now = datetime.now(timezone.utc)
        update_data = {"active": False, "unsubscribedAt": now}
        if self.anonymize_on_unsubscribe:
            update_data.update({
                "email": f"unsubscribed_{int(now.timestamp() * 1000)}@deleted.local",
                "name": ANONYMIZED_NAME,
                "emailDigest": email_digest(claims.email),
            })
        updated = await self.repository._update_subscriber(subscriber.uid, update_data)
        if not updated:
            raise SubscriberNotFoundError(subscriber.uid)
        logger.info("Unsubscribed subscriber %s", updated.uid)
        return updated


def new_subscriber_service(
    repository: SubscriberRepository,
    token_service: TokenService,
    anonymize_on_unsubscribe: bool = False,
) -> SubscriberService:
    return SubscriberService(repository, token_service, anonymize_on_unsubscribe)
