import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from shared.middleware.error_handler import error_envelope_middleware
from shared.middleware.request_id import RequestIdLogFilter, request_id_middleware
from socialgraph.access_control.internal_router import router as access_internal_router
from socialgraph.config import get_settings
from socialgraph.database import dispose_db, init_db
from socialgraph.follow_requests.router import router as follow_requests_router
from socialgraph.privacy.router import router as privacy_router
from socialgraph.rate_limit import limiter
from socialgraph.reconciler.admin_router import router as admin_router
from socialgraph.redis_client import close_redis_client
from socialgraph.relationships.router import router as relationships_router
from socialgraph.users.router import router as users_router

logger = logging.getLogger(__name__)


# ── OpenAPI metadata ──────────────────────────────────────────────────────────

_DESCRIPTION = """
## Social Graph Service

Owns who follows whom, who has blocked whom, and the privacy rules those
relationships are checked against:

* **Follows** — unidirectional follow edges with denormalized follower / following
  counters kept consistent with the edges under concurrent writes.
* **Follow requests** — private accounts (or accounts requiring approval) receive
  requests instead of followers: approve, reject, cancel, bulk approve / reject.
* **Blocks** — blocking removes follow edges and pending requests in both directions
  and hides the blocker's profile and lists from the blocked user.
* **Privacy settings** — account privacy, default post visibility, per-interaction
  levels (comments, likes, shares, messages), notification toggles and profile
  display flags.
* **Access control** — internal endpoints other services call to decide whether a
  viewer may see a post or interact with a user.

### Authentication
All user endpoints require:
```
Authorization: Bearer <access_token>
```
Admin endpoints additionally require the `admin` or `super_admin` role in the token.
`/internal/*` endpoints are for service-to-service calls only.

### Error shape
Domain errors return `{ "detail": "Human-readable message" }` with a fixed status per
error kind (400 invalid input, 403 forbidden by a relationship, 404 missing,
409 duplicate). Request validation errors return `400`.

### Rate limits
`POST /follow/{target_id}` is limited to 50 requests per hour; `429 Too Many Requests`
is returned when exceeded.
"""

_TAGS_METADATA = [
    {
        "name": "Relationships",
        "description": (
            "Follow / unfollow, block / unblock, relationship lookups and follower / "
            "following lists. Lists of a private account are visible to its followers only."
        ),
    },
    {
        "name": "Follow Requests",
        "description": "Pending follow requests received and sent, and their approval workflow.",
    },
    {
        "name": "Privacy",
        "description": "The caller's privacy settings. Unknown keys are rejected.",
    },
    {
        "name": "Users",
        "description": "Public profile projection honoring the owner's display flags.",
    },
    {
        "name": "Access Control (internal)",
        "description": "Post visibility and interaction decisions for other services.",
    },
    {
        "name": "Admin",
        "description": "**Admin only.** Counter reconciliation and block inspection.",
    },
]


# ── Health schema ─────────────────────────────────────────────────────────────

class HealthResponse(BaseModel):
    status: str
    service: str


# ── App factory ───────────────────────────────────────────────────────────────

def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] [%(request_id)s] %(message)s",
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(RequestIdLogFilter())


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    init_db(settings.database_url)
    logger.info("Social graph service started (%s)", settings.env_name)
    yield
    await close_redis_client()
    await dispose_db()


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(
            {
                "error": {"code": "validation_error", "message": "Invalid request"},
                "detail": exc.errors(),
                "request_id": getattr(request.state, "request_id", None),
            }
        ),
    )


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)
    app = FastAPI(
        title="Social Graph Service",
        version="1.0.0",
        description=_DESCRIPTION,
        openapi_tags=_TAGS_METADATA,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Attach rate limiter state before middleware
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Middleware is applied in reverse-registration order (last added = outermost).
    # CORS must be outermost so ALL responses (including 429s) carry CORS headers.
    app.add_middleware(SlowAPIMiddleware)
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(error_envelope_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,
    )

    app.include_router(relationships_router, prefix="/api/v1")
    app.include_router(follow_requests_router, prefix="/api/v1")
    app.include_router(privacy_router, prefix="/api/v1")
    app.include_router(users_router, prefix="/api/v1")
    app.include_router(access_internal_router, prefix="/api/v1")
    app.include_router(admin_router, prefix="/api/v1")

    @app.get("/health", response_model=HealthResponse, tags=["health"], include_in_schema=True)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", service="socialgraph")

    return app


app = create_app()
