import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, JSONResponse
from content.email_content import get_unsubscribe_page
from core.base.models import SubscribeRequest, NewsletterRequest, NewsletterResult, Subscriber
from core.base.exception import (
    DatastoreUnavailableError,
    InvalidUnsubscribeLinkError,
    SubscriberNotFoundError,
)
from core.services.subscriber_service import SubscriberService, SubscribeOutcome
from core.services.email_service import EmailService
from core.routes.dependencies import (
    limiter,
    templates,
    get_subscriber_service,
    get_email_service,
    require_admin,
)
from core.handlers.env_handler import env

logger = logging.getLogger(__name__)

router = APIRouter()

SUBSCRIBE_MESSAGES = {
    SubscribeOutcome.Created: (status.HTTP_201_CREATED, "Successfully subscribed to newsletter!"),
    SubscribeOutcome.AlreadyActive: (status.HTTP_200_OK, "You are already subscribed!"),
    SubscribeOutcome.Reactivated: (status.HTTP_200_OK, "Welcome back! Subscription reactivated."),
}

UNSUBSCRIBED_MESSAGE = "You've been unsubscribed. You will no longer receive emails from us."
# (status, page outcome, message) per failure; token failures share one entry
UNSUBSCRIBE_FAILURES = {
    InvalidUnsubscribeLinkError: (status.HTTP_400_BAD_REQUEST, "invalid", "This unsubscribe link is invalid or has expired."),
    SubscriberNotFoundError: (status.HTTP_404_NOT_FOUND, "not_found", "This link is no longer valid."),
    DatastoreUnavailableError: (status.HTTP_503_SERVICE_UNAVAILABLE, "error", "Something went wrong, please try again later."),
}


async def _unsubscribe(token: str, subscriber_service: SubscriberService):
    """Run the unsubscribe flow, returning (subscriber, None) or (None, failure)."""
    try:
        return await subscriber_service.unsubscribe(token), None
    except (InvalidUnsubscribeLinkError, SubscriberNotFoundError, DatastoreUnavailableError) as e:
        logger.info("Unsubscribe failed: %s", e)
        return None, UNSUBSCRIBE_FAILURES[type(e)]


def _display_email(subscriber: Subscriber) -> str:
    # anonymised records only hold a placeholder address
    return "" if subscriber.emailDigest else subscriber.email


@router.post("/subscribe")
@limiter.limit("5/minute")
async def subscribe(
    request: Request,
    body: SubscribeRequest,
    subscriber_service: SubscriberService = Depends(get_subscriber_service),
):
    """Add an email to the newsletter, reactivating it if it was unsubscribed."""
    try:
        outcome, _ = await subscriber_service.subscribe(body.email, body.name.strip())
    except DatastoreUnavailableError as e:
        logger.error("Subscribe failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to subscribe. Please try again.",
        )
    status_code, message = SUBSCRIBE_MESSAGES[outcome]
    return JSONResponse(status_code=status_code, content={"message": message, "status": outcome.value})


@router.get("/unsubscribe/{token}", response_class=HTMLResponse)
@limiter.limit("5/minute")
async def unsubscribe_page(
    request: Request,
    token: str,
    subscriber_service: SubscriberService = Depends(get_subscriber_service),
):
    """Landing page for the unsubscribe link embedded in newsletter emails."""
    subscriber, failure = await _unsubscribe(token, subscriber_service)
    if failure:
        status_code, outcome, _ = failure
        page = get_unsubscribe_page(outcome)
    else:
        status_code = status.HTTP_200_OK
        page = get_unsubscribe_page("success", _display_email(subscriber))
    return templates.TemplateResponse(
        request,
        "unsubscribe.html",
        {**page, "site_url": env.state["site_url"], "site_name": env.state["site_name"]},
        status_code=status_code,
    )


@router.put("/unsubscribe/{token}")
@limiter.limit("5/minute")
async def unsubscribe(
    request: Request,
    token: str,
    subscriber_service: SubscriberService = Depends(get_subscriber_service),
):
    """Handle unsubscribe requests from the web client"""
    subscriber, failure = await _unsubscribe(token, subscriber_service)
    if failure:
        status_code, _, message = failure
        raise HTTPException(status_code=status_code, detail=message)
    return JSONResponse(content={
        "message": UNSUBSCRIBED_MESSAGE,
        "email": _display_email(subscriber),
    })


@router.post("/newsletter/send", response_model=NewsletterResult, dependencies=[Depends(require_admin)])
@limiter.limit("5/minute")
async def send_newsletter(
    request: Request,
    body: NewsletterRequest,
    subscriber_service: SubscriberService = Depends(get_subscriber_service),
    email_service: EmailService = Depends(get_email_service),
):
    """Send a newsletter to all active subscribers, each with their own unsubscribe link."""
    try:
        subscribers = await subscriber_service.list_active_subscribers()
    except DatastoreUnavailableError as e:
        logger.error("Could not load subscribers: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Something went wrong, please try again later.",
        )
    return await email_service.send_newsletter(body.subject, body.content, subscribers)
