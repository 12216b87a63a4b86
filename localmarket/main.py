from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from localmarket.core.config import settings
from localmarket.core.errors import DomainError
from localmarket.core.observability import (
    domain_exception_handler,
    http_exception_handler,
    request_logging_middleware,
    setup_observability,
    unhandled_exception_handler,
    validation_exception_handler,
)
from localmarket.db.session import engine
from localmarket.routers import (
    admin,
    audit,
    auth,
    businesses,
    dashboard,
    event_invitations,
    events,
    functions,
    geocode,
    interests,
    products,
    team,
    vendors,
)

app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description=(
        "Backend API for LocalMarket, a directory of local pop-up events and the vendors "
        "who sell at them.\n\n"
        "Swagger quick test flow:\n"
        "1. Call `POST /auth/signup` or `POST /auth/login`.\n"
        "2. Click **Authorize** and use your email + password "
        "(OAuth token URL: `/auth/token`).\n"
        "3. Try `POST /vendors/signup`, then `POST /events` and invite your business."
    ),
    swagger_ui_parameters={
        "persistAuthorization": True,
        "displayRequestDuration": True,
        "defaultModelsExpandDepth": 1,
    },
    openapi_tags=[
        {"name": "health", "description": "Service status and quick links."},
        {"name": "auth", "description": "Accounts, profiles, tokens and password reset."},
        {"name": "businesses", "description": "Business pages, search and access checks."},
        {"name": "team", "description": "Business members and invite codes."},
        {"name": "vendors", "description": "Vendor signup and vendor profile."},
        {"name": "admin", "description": "Vendor review and platform roles."},
        {"name": "events", "description": "Event listings, cities and vendor invitations."},
        {"name": "event-invitations", "description": "Business responses to event invitations."},
        {"name": "products", "description": "Business products and event showcases."},
        {"name": "interests", "description": "Shopper interest in showcased products."},
        {"name": "dashboard", "description": "Vendor interest dashboard."},
        {"name": "geocode", "description": "Place search for event locations."},
        {"name": "functions", "description": "RPC-style business helpers."},
        {"name": "audit", "description": "Audit trail for business changes."},
    ],
)

setup_observability()
app.middleware("http")(request_logging_middleware)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(DomainError, domain_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

cors_origins = settings.cors_origins or ["http://localhost:5173"]
allow_all_origins = "*" in cors_origins
env_value = settings.env.lower().strip()
allow_origin_regex = settings.cors_origin_regex

if (
    not allow_origin_regex
    and env_value in {"dev", "development", "staging", "stage"}
):
    # Local dev servers pick dynamic localhost ports.
    allow_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all_origins else cors_origins,
    allow_origin_regex=allow_origin_regex,
    allow_credentials=not allow_all_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(businesses.router)
app.include_router(team.router)
app.include_router(vendors.router)
app.include_router(admin.router)
app.include_router(events.router)
app.include_router(event_invitations.router)
app.include_router(products.router)
app.include_router(interests.router)
app.include_router(dashboard.router)
app.include_router(geocode.router)
app.include_router(functions.router)
app.include_router(audit.router)


@app.get("/", tags=["health"])
def root():
    return {
        "app": settings.app_name,
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/health",
        "ready": "/ready",
    }


@app.get("/health", tags=["health"])
def health():
    return {"ok": True}


@app.get("/ready", tags=["health"])
def ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        return {"ok": False}
    return {"ok": True}
