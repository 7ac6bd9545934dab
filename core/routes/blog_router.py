import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from core.base.exception import DatastoreUnavailableError, PostNotFoundError
from core.services.seo_service import SeoService, is_bot
from core.routes.dependencies import limiter, get_seo_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/blog/{slug}")
@limiter.limit("30/minute")
async def blog_post(
    request: Request,
    slug: str,
    user_agent: Optional[str] = Header(None),
    seo_service: SeoService = Depends(get_seo_service),
):
    """Rendered article for crawlers; people are sent on to the single-page app."""
    if not is_bot(user_agent):
        return RedirectResponse(seo_service.post_url(slug), status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    try:
        post = await seo_service.get_post(slug)
    except PostNotFoundError:
        return HTMLResponse(seo_service.render_not_found(), status_code=status.HTTP_404_NOT_FOUND)
    except DatastoreUnavailableError as e:
        logger.error("Blog post lookup failed [%s]: %s", slug, e)
        return HTMLResponse("<h1>Temporarily unavailable</h1>", status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return HTMLResponse(seo_service.render_post(post))


@router.get("/sitemap.xml")
async def sitemap(seo_service: SeoService = Depends(get_seo_service)):
    return Response(content=await seo_service.render_sitemap(), media_type="application/xml")
