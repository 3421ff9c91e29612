"""
Coalition Hub FastAPI Application - Main entry point.

Membership backend for a statewide nonprofit coalition:

- Organizations: public registration, admin approval, member profiles
- Content: announcements, blogs, alerts and surveys with email fan-out
- Engagement: survey and alert responses, email subscriptions, notifications
- Site: editable page content, organization map, S3 uploads
- Billing: Stripe membership subscriptions

Every endpoint lives under /api.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coalition.core.config import settings
from coalition.core.logging import configure_logging
from coalition.db.base import init_db
from coalition.services import cache
from coalition.services.scheduler import start_scheduler, shutdown_scheduler

from coalition.api.v1 import (
    auth,
    organizations,
    admin,
    tags,
    announcements,
    blogs,
    alerts,
    alert_responses,
    surveys,
    survey_responses,
    subscriptions,
    notifications,
    email_notifications,
    page_content,
    map as org_map,
    uploads,
    billing,
    health,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    configure_logging()
    # Note: In production, use Alembic migrations instead
    await init_db()
    await cache.init_cache()
    await cache.warm_cache()
    if settings.SCHEDULER_ENABLED:
        start_scheduler()
    logger.info(f"{settings.APP_NAME} started ({settings.APP_ENV})")
    yield
    shutdown_scheduler()
    await cache.close_cache()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="""
Coalition Hub - membership management for a nonprofit coalition.

## Roles

- **Admin**: manages organizations, content and site pages
- **Organization**: approved members; manage their profile and answer surveys and alerts
- **Public**: reads published content, registers, subscribes and uses the contact form
    """,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# SYSTEM
# ============================================================================

app.include_router(health.router, tags=["health"])


# ============================================================================
# ACCOUNTS
# ============================================================================

app.include_router(auth.router, prefix=f"{settings.API_PREFIX}/auth", tags=["auth"])
app.include_router(organizations.router, prefix=f"{settings.API_PREFIX}/organizations", tags=["organizations"])
app.include_router(admin.router, prefix=f"{settings.API_PREFIX}/admin", tags=["admin"])


# ============================================================================
# CONTENT
# ============================================================================

app.include_router(tags.router, prefix=f"{settings.API_PREFIX}/tags", tags=["tags"])
app.include_router(announcements.router, prefix=f"{settings.API_PREFIX}/announcements", tags=["announcements"])
app.include_router(blogs.router, prefix=f"{settings.API_PREFIX}/blogs", tags=["blogs"])
app.include_router(alerts.router, prefix=f"{settings.API_PREFIX}/alerts", tags=["alerts"])
app.include_router(surveys.router, prefix=f"{settings.API_PREFIX}/surveys", tags=["surveys"])
app.include_router(page_content.router, prefix=f"{settings.API_PREFIX}/page-content", tags=["page-content"])


# ============================================================================
# ENGAGEMENT
# ============================================================================

app.include_router(
    alert_responses.router,
    prefix=f"{settings.API_PREFIX}/alert-responses",
    tags=["alert-responses"]
)
app.include_router(
    survey_responses.router,
    prefix=f"{settings.API_PREFIX}/survey-responses",
    tags=["survey-responses"]
)
app.include_router(subscriptions.router, prefix=f"{settings.API_PREFIX}/subscriptions", tags=["subscriptions"])
app.include_router(notifications.router, prefix=f"{settings.API_PREFIX}/notifications", tags=["notifications"])
app.include_router(
    email_notifications.router,
    prefix=f"{settings.API_PREFIX}/email-notifications",
    tags=["email-notifications"]
)


# ============================================================================
# INTEGRATIONS
# ============================================================================

app.include_router(org_map.router, prefix=f"{settings.API_PREFIX}/map", tags=["map"])
app.include_router(uploads.router, prefix=f"{settings.API_PREFIX}/uploads", tags=["uploads"])
app.include_router(billing.router, prefix=f"{settings.API_PREFIX}/stripe", tags=["billing"])


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    if settings.DEBUG:
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc)}
        )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "coalition.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
