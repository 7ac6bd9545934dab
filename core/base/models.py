from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from core.utils.str import random_id
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Subscriber(BaseModel):
    """Newsletter recipient as stored in the `subscribers` collection"""
    uid: str = Field(default_factory=random_id)
    # plain str: anonymised records hold a placeholder address
    email: str
    name: Optional[str] = None
    active: bool = True
    emailDigest: Optional[str] = None
    createdAt: datetime = Field(default_factory=utc_now)
    updatedAt: datetime = Field(default_factory=utc_now)
    unsubscribedAt: Optional[datetime] = None


class SubscribeRequest(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=80)


class UnsubscribeClaims(BaseModel):
    """Trusted result of a verified unsubscribe token"""
    subscriber_id: str
    email: str


class NewsletterRequest(BaseModel):
    subject: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)


class NewsletterResult(BaseModel):
    success: bool = True
    sent: int
    total: int


class BlogPost(BaseModel):
    slug: str
    title: str
    content: str = ""
    excerpt: Optional[str] = None
    featured_image: Optional[str] = None
    published: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SitemapEntry(BaseModel):
    loc: str
    priority: str
    changefreq: str
    lastmod: Optional[str] = None
