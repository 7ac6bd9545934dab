import re
import json
import logging
from typing import Optional
from jinja2 import Environment, FileSystemLoader, select_autoescape
from core.base.models import BlogPost, SitemapEntry
from core.base.exception import DatastoreUnavailableError, PostNotFoundError
from core.repositories.post_repository import PostRepository
from core.handlers.env_handler import templates_dir
from core.utils.str import make_excerpt

logger = logging.getLogger(__name__)

# Search engine crawlers and link-preview fetchers that should get rendered HTML
BOT_PATTERN = re.compile(
    r"googlebot|bingbot|slurp|duckduckbot|baiduspider|yandex|sogou|exabot|"
    r"facebookexternalhit|facebot|twitterbot|linkedinbot|slackbot|discordbot|"
    r"whatsapp|telegrambot|applebot|pinterest|redditbot|embedly|skypeuripreview|"
    r"semrushbot|ahrefsbot|petalbot|bot/|crawler|spider",
    re.IGNORECASE,
)

STATIC_PAGES = [
    ("/", "1.0", "weekly"),
    ("/blog", "0.9", "daily"),
    ("/cybersecurity", "0.8", "monthly"),
    ("/software", "0.8", "monthly"),
    ("/search", "0.6", "monthly"),
]

def is_bot(user_agent: Optional[str]) -> bool:
    """Crawlers get server-rendered HTML. A missing user agent counts as a bot."""
    if not user_agent or not user_agent.strip():
        return True
    return bool(BOT_PATTERN.search(user_agent))

class SeoService:
    def __init__(self, repository: PostRepository, site_url: str, site_name: str, author: str):
        self.repository = repository
        self.site_url = site_url
        self.site_name = site_name
        self.author = author
        self.env = Environment(
            loader=FileSystemLoader(templates_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def post_url(self, slug: str) -> str:
        return f"{self.site_url}/blog/{slug}"

    async def get_post(self, slug: str) -> BlogPost:
        post = await self.repository._get_published_post(slug)
        if post is None:
            raise PostNotFoundError(slug)
        return post

    def render_post(self, post: BlogPost) -> str:
        """Full SEO page for crawlers: meta, Open Graph and JSON-LD."""
        description = post.excerpt or make_excerpt(post.content)
        structured_data = {
            "@context": "https://schema.org",
            "@type": "BlogPosting",
            "headline": post.title,
            "description": description,
            "image": post.featured_image or "",
            "author": {"@type": "Person", "name": self.author},
            "datePublished": post.created_at.isoformat() if post.created_at else None,
            "dateModified": post.updated_at.isoformat() if post.updated_at else None,
            "mainEntityOfPage": self.post_url(post.slug),
        }
        template = self.env.get_template("blog-post.html")
        return template.render(
            post=post,
            description=description,
            canonical_url=self.post_url(post.slug),
            site_name=self.site_name,
            # "</" would close the script element early
            structured_data=json.dumps(structured_data, ensure_ascii=False).replace("</", "<\\/"),
        )

    def render_not_found(self) -> str:
        return self.env.get_template("post-not-found.html").render(site_url=self.site_url)

    async def sitemap_entries(self) -> list[SitemapEntry]:
        entries = [
            SitemapEntry(loc=f"{self.site_url}{path}", priority=priority, changefreq=changefreq)
            for path, priority, changefreq in STATIC_PAGES
        ]
        try:
            posts = await self.repository._list_published_posts()
        except DatastoreUnavailableError as e:
            logger.error("Error fetching posts for sitemap: %s", e)
            return entries
        for post in posts:
            entries.append(SitemapEntry(
                loc=self.post_url(post.slug),
                priority="0.7",
                changefreq="weekly",
                lastmod=post.updated_at.date().isoformat() if post.updated_at else None,
            ))
        return entries

    async def render_sitemap(self) -> str:
        entries = await self.sitemap_entries()
        return self.env.get_template("sitemap.xml").render(entries=entries)


def new_seo_service(repository: PostRepository, site_url: str, site_name: str, author: str) -> SeoService:
    return SeoService(repository, site_url, site_name, author)
