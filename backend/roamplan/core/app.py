# backend/roamplan/core/app.py

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from roamplan.api.routes_auth import router as auth_router
from roamplan.api.routes_preferences import router as preferences_router
from roamplan.api.routes_itinerary import router as itinerary_router
from roamplan.api.routes_sponsored import router as sponsored_router
from roamplan.api.routes_partners import router as partners_router
from roamplan.api.routes_hotels import router as hotels_router

from roamplan.core.config_loader import settings
from roamplan.core.errors import RoamplanError, roamplan_error_handler
from roamplan.core.middleware import (
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
    UnexpectedErrorMiddleware,
    hsts_enabled,
)


API_PREFIX = "/api/v1"


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Middleware runs outermost-last-added: security headers wrap the rate
    limiter so 429 responses carry them too, and unexpected errors become
    a 500 innermost so both layers still see that response.
    """
    app = FastAPI(
        title="Roamplan",
        description="Itinerary planning API: trips, budgets, partners and sponsored placements",
        version="1.0.0"
    )

    # -------------------------------------------------------------
    # MIDDLEWARE
    # -------------------------------------------------------------
    app.add_middleware(UnexpectedErrorMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        RateLimitMiddleware,
        default_rate=settings.RATE_LIMIT_DEFAULT,
        auth_rate=settings.RATE_LIMIT_AUTH,
    )
    app.add_middleware(SecurityHeadersMiddleware, hsts=hsts_enabled())

    # -------------------------------------------------------------
    # ERRORS
    # -------------------------------------------------------------
    app.add_exception_handler(RoamplanError, roamplan_error_handler)

    # -------------------------------------------------------------
    # ROUTES
    # -------------------------------------------------------------
    for router in (
        auth_router,
        preferences_router,
        itinerary_router,
        sponsored_router,
        partners_router,
        hotels_router,
    ):
        app.include_router(router, prefix=API_PREFIX)

    if settings.STORAGE_PUBLIC_BASE_URL.startswith("/"):
        app.mount(
            settings.STORAGE_PUBLIC_BASE_URL.rstrip("/"),
            StaticFiles(directory=settings.STORAGE_DIR, check_dir=False),
            name="storage",
        )

    @app.get("/")
    def root():
        return {
            "status": "ok",
            "message": "Roamplan backend is running",
            "env": settings.environment,
            "version": app.version,
        }

    return app
