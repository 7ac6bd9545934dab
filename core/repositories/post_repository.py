from motor.motor_asyncio import AsyncIOMotorCollection
from typing import Optional
from core.base.models import BlogPost
from core.repositories.subscriber_repository import translate_datastore_errors


class PostRepository:
    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    @translate_datastore_errors
    async def _get_published_post(self, slug: str) -> Optional[BlogPost]:
        data = await self.collection.find_one({"slug": slug, "published": True})
        if data:
            return BlogPost(**data)
        return None

    @translate_datastore_errors
    async def _list_published_posts(self) -> list[BlogPost]:
        cursor = self.collection.find({"published": True})
        return [BlogPost(**data) async for data in cursor]
