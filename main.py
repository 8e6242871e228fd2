import os
import sys
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Ensure local imports resolve
sys.path.append(os.path.dirname(__file__))

# Core
from core.config import settings
from core.config_validator import validate_config_on_startup
from core.errors import error_category
from core.logging_config import logger
from core.scheduler import start_scheduler

# -------------------------------------------------
# Routers
# -------------------------------------------------
from routers.health import router as health_router
from routers.workspaces import router as workspaces_router
from routers.members import router as members_router
from routers.entitlements import router as entitlements_router
from routers.reports import router as reports_router
from routers.share_links import router as share_links_router
from routers.contacts import router as contacts_router
from routers.parcels import router as parcels_router
from routers.audit import router as audit_router
from routers.billing import router as billing_router
from routers.stripe_webhooks import router as stripe_webhooks_router


def _validation_details(exc: RequestValidationError) -> list:
    details = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "header")]
        details.append({"field": ".".join(loc) or "body", "issue": err.get("msg", "invalid")})
    return details


# -------------------------------------------------
# Create the Application
# -------------------------------------------------
def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="0.1.0",
        description="Parcel Intelligence API: workspaces, entitlements, reports and sharing on Supabase",
    )

    # -------------------------------------------------
    # CORS
    # -------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------
    # Startup
    # -------------------------------------------------
    @app.on_event("startup")
    async def on_startup():
        logger.info(f"Starting {settings.PROJECT_NAME} ({settings.ENV})")
        try:
            validate_config_on_startup()
        except RuntimeError:
            if settings.ENV == "production":
                raise
            logger.warning("Continuing without required configuration (non-production)")

        if settings.ENABLE_SCHEDULER:
            app.state.scheduler = start_scheduler()

    @app.on_event("shutdown")
    async def on_shutdown():
        scheduler = getattr(app.state, "scheduler", None)
        if scheduler is not None:
            scheduler.shutdown(wait=False)

    # -------------------------------------------------
    # Error handling
    # Structured details ({"error", "code", ...}) are returned as the body
    # -------------------------------------------------
    @app.exception_handler(StarletteHTTPException)
    async def handle_http(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (401, 403, 500):
            code = exc.detail.get("code") if isinstance(exc.detail, dict) else exc.detail
            logger.warning(f"HTTP {exc.status_code} at {request.url.path}: {code}")

        if isinstance(exc.detail, dict):
            content = exc.detail
        else:
            category = error_category(exc.status_code)
            content = {
                "error": category,
                "code": category.upper(),
                "message": str(exc.detail),
                "status": exc.status_code,
            }
        return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def handle_validation(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "status": 400,
                "details": _validation_details(exc),
            },
        )

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.error("Unhandled error at %s", request.url, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_error",
                "code": "INTERNAL_ERROR",
                "message": "Internal server error",
                "status": 500,
            },
        )

    # -------------------------------------------------
    # Register Routers
    # -------------------------------------------------

    # Workspaces & membership
    app.include_router(workspaces_router)
    app.include_router(members_router)

    # Entitlements & billing
    app.include_router(entitlements_router)
    app.include_router(billing_router)
    app.include_router(stripe_webhooks_router)

    # Parcel intelligence
    app.include_router(parcels_router)
    app.include_router(reports_router)
    app.include_router(share_links_router)
    app.include_router(contacts_router)

    # Audit
    app.include_router(audit_router)

    # Health
    app.include_router(health_router)

    return app


# Create the global FastAPI instance
app = create_app()
