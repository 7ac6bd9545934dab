import hmac
from typing import Optional
from functools import lru_cache
from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.templating import Jinja2Templates
from slowapi import Limiter
from slowapi.util import get_remote_address
from core.handlers.env_handler import env, templates_dir
from core.repositories.subscriber_repository import SubscriberRepository
from core.repositories.post_repository import PostRepository
from core.services.token_service import TokenService, new_token_service
from core.services.email_service import EmailService, new_email_service
from core.services.subscriber_service import SubscriberService, new_subscriber_service
from core.services.seo_service import SeoService, new_seo_service

limiter = Limiter(key_func=get_remote_address, enabled=env.limits["enabled"])

templates = Jinja2Templates(directory=templates_dir)

@lru_cache
def get_token_service() -> TokenService:
    return new_token_service(
        env.token["secret"],
        env.token["algorithm"],
        env.token["lifetime_days"],
    )

def get_email_service(token_service: TokenService = Depends(get_token_service)) -> EmailService:
    return new_email_service(token_service)

def get_subscriber_service(
    request: Request,
    token_service: TokenService = Depends(get_token_service),
) -> SubscriberService:
    repository = SubscriberRepository(request.app.state.db["subscribers"])
    return new_subscriber_service(repository, token_service, env.token["anonymize"])

def get_seo_service(request: Request) -> SeoService:
    repository = PostRepository(request.app.state.db["blog_posts"])
    return new_seo_service(repository, env.state["site_url"], env.state["site_name"], env.state["author"])

async def require_admin(x_admin_key: Optional[str] = Header(None)) -> None:
    """Guard for admin-only endpoints (newsletter sending)."""
    expected = env.auth["admin_key"]
    if not x_admin_key or not hmac.compare_digest(x_admin_key.encode(), expected.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin key")
