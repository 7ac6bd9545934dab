import logging
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from contextlib import asynccontextmanager
from core.clients.mongo_client import MongoClient
from core.handlers.env_handler import env
from core.routes.dependencies import limiter
from core.routes import newsletter_router, blog_router
from core.utils.logs import configure_logging
from core.utils.str import get_random_rate_limit_warning

configure_logging(env.state["log_level"])
logger = logging.getLogger(__name__)

ALLOW_ORIGINS = env.auth["allow_origins"] or [env.state["site_url"]]
ALLOW_HEADERS = env.auth["allow_headers"]

@asynccontextmanager
async def lifespan(app: FastAPI):
    mongo_client = MongoClient(env.mongo["uri"], env.mongo["db"])
    db = await mongo_client.ping()
    await mongo_client.ensure_indexes(db)
    app.state.db = db
    yield
    await mongo_client.close()


app = FastAPI(title="Portfolio Blog API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOW_ORIGINS,
    allow_headers=ALLOW_HEADERS,
    allow_credentials=True,
    allow_methods=["GET", "PUT", "POST", "OPTIONS"],
)

async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    logger.warning("Rate limit exceeded [%s]: %s", request.url.path, exc.detail)
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"detail": get_random_rate_limit_warning()},
    )

# Rate limiting configuration
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.include_router(newsletter_router.router)
app.include_router(blog_router.router)

@app.get("/")
@limiter.limit("3/minute")
async def root_endpoint(request: Request):
    return JSONResponse(content={
        "ping": "pong",
        "message": "Portfolio blog API pinged successfully :)"
    })
