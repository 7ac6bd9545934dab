from functools import wraps
from motor.motor_asyncio import AsyncIOMotorCollection
from typing import Optional
from pymongo.errors import DuplicateKeyError, PyMongoError
from core.base.models import Subscriber
from core.base.exception import DatastoreUnavailableError
from core.utils.str import email_digest
from datetime import datetime, timezone


def translate_datastore_errors(func):
    """Surface driver failures as DatastoreUnavailableError."""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except DuplicateKeyError:
            raise
        except PyMongoError as e:
            raise DatastoreUnavailableError(details=f"{func.__name__}: {e}")
    return wrapper


class SubscriberRepository:
    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    @translate_datastore_errors
    async def _create_subscriber(self, subscriber: Subscriber) -> Subscriber:
        """Insert a new subscriber into the database."""
        try:
            _ = await self.collection.insert_one(subscriber.model_dump())
            return await self._get_subscriber_by_uid(subscriber.uid)
        except DuplicateKeyError:
            raise ValueError("A subscriber with that id already exists")

    @translate_datastore_errors
    async def _get_subscriber_by_email(self, email: str) -> Optional[Subscriber]:
        """Retrieve a subscriber by email."""
        data = await self.collection.find_one({"email": email})
        if data:
            return Subscriber(**data)
        return None

    @translate_datastore_errors
    async def _get_subscriber_by_uid(self, uid: str) -> Optional[Subscriber]:
        """Retrieve a subscriber by UID."""
        data = await self.collection.find_one({"uid": uid})
        if data:
            return Subscriber(**data)
        return None

    @translate_datastore_errors
    async def _get_subscriber_by_uid_and_email(self, uid: str, email: str) -> Optional[Subscriber]:
        """
        Point lookup used by the unsubscribe flow. Both id and email must match;
        anonymised records are matched through the digest of their old address.
        """
        data = await self.collection.find_one({
            "uid": uid,
            "$or": [{"email": email}, {"emailDigest": email_digest(email)}],
        })
        if data:
            return Subscriber(**data)
        return None

    @translate_datastore_errors
    async def _list_active_subscribers(self) -> list[Subscriber]:
        cursor = self.collection.find({"active": True})
        return [Subscriber(**data) async for data in cursor]

    @translate_datastore_errors
    async def _update_subscriber(self, uid: str, update_data: dict) -> Optional[Subscriber]:
        """Update subscriber fields by UID. Returns None when no record matched."""
        update_data["updatedAt"] = datetime.now(timezone.utc)
        result = await self.collection.update_one(
            {"uid": uid}, {"$set": update_data}
        )
        if result.matched_count > 0:
            return await self._get_subscriber_by_uid(uid)
        return None
