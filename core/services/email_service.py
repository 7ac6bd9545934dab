import asyncio
import logging
from functools import partial
from typing import Optional
from urllib.parse import quote
from jinja2 import Environment, FileSystemLoader, select_autoescape
from mailjet_rest import Client
from core.base.models import Subscriber, NewsletterResult
from core.services.token_service import TokenService
from core.handlers.env_handler import env, templates_dir

logger = logging.getLogger(__name__)

SITE_URL = env.state["site_url"]
SITE_NAME = env.state["site_name"]
SENDER_EMAIL = env.state["sender"]
SENDER_NAME = env.state["sender_name"]
MAILJET_API_KEY = env.mailjet["api_key"]
MAILJET_SECRET_KEY = env.mailjet["secret_key"]

# Mailjet v3.1 accepts at most 50 messages per send call
BATCH_SIZE = 50

def build_unsubscribe_url(token: str, site_url: str = SITE_URL) -> str:
    return f"{site_url}/unsubscribe/{quote(token, safe='')}"

class EmailService:
    def __init__(self, token_service: TokenService, client: Optional[Client] = None):
        self.token_service = token_service
        self.mailjet = client or Client(auth=(MAILJET_API_KEY, MAILJET_SECRET_KEY), version='v3.1')
        self.env = Environment(
            loader=FileSystemLoader(templates_dir),
            autoescape=select_autoescape(["html"])
        )

    def compose_newsletter_message(self, subscriber: Subscriber, subject: str, content: str) -> dict:
        """Build one Mailjet message with a recipient-specific unsubscribe link"""
        token = self.token_service.generate_unsubscribe_token(subscriber.uid, subscriber.email)
        unsubscribe_url = build_unsubscribe_url(token)
        template = self.env.get_template("newsletter-email.html")
        html_content = template.render(
            subject=subject,
            content=content,
            site_name=SITE_NAME,
            site_url=SITE_URL,
            unsubscribe_url=unsubscribe_url,
        )
        return {
            "From": {"Email": SENDER_EMAIL, "Name": SENDER_NAME},
            "To": [{"Email": subscriber.email, "Name": subscriber.name or subscriber.email}],
            "Subject": subject,
            "HTMLPart": html_content,
            "TextPart": (
                f"{subject}\n\n{content}\n\n"
                "You're receiving this because you subscribed to our newsletter.\n"
                f"Unsubscribe: {unsubscribe_url}\n"
            ),
            "CustomCampaign": "newsletter",
        }

    async def _send_batch(self, messages: list[dict]) -> int:
        """Send one batch; returns the number of messages accepted."""
        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(None, partial(self.mailjet.send.create, data={"Messages": messages}))
        except Exception as e:
            # a failed batch is reported as unsent; remaining batches still go out
            logger.error("Error sending newsletter batch: %s", e)
            return 0
        if response.status_code != 200:
            logger.error("Mailjet rejected newsletter batch [%s]", response.status_code)
            return 0
        results = response.json().get("Messages", [])
        return sum(1 for result in results if result.get("Status") == "success")

    async def send_newsletter(self, subject: str, content: str, subscribers: list[Subscriber]) -> NewsletterResult:
        """Send a newsletter to every given subscriber"""
        logger.info("Sending newsletter %r to %d recipients", subject, len(subscribers))
        messages = [self.compose_newsletter_message(s, subject, content) for s in subscribers]
        sent = 0
        for start in range(0, len(messages), BATCH_SIZE):
            sent += await self._send_batch(messages[start:start + BATCH_SIZE])
        logger.info("Newsletter %r sent to %d/%d recipients", subject, sent, len(messages))
        return NewsletterResult(sent=sent, total=len(messages))


def new_email_service(token_service: TokenService, client: Optional[Client] = None) -> EmailService:
    """EmailService factory"""
    return EmailService(token_service, client)
