"""
DietConnect API - Main Application

Multi-tenant backend for dietitian practices: staff manage clients and
diet plans on the web, clients follow their plans from the mobile app.
"""

import logging
import time
import uuid

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from dietconnect.api import (
    auth,
    client_app,
    client_auth,
    client_referrals,
    clients,
    compliance,
    dashboard,
    diet_plans,
    food_items,
    meal_logs,
    meals,
    notifications,
    organizations,
    referrals,
    team,
)
from dietconnect.core.config import settings
from dietconnect.core.database import Base, engine
from dietconnect.core.errors import register_exception_handlers
from dietconnect.core.logging_config import configure_logging
from dietconnect.core.rate_limit import limit_api

configure_logging()
logger = logging.getLogger("dietconnect")

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.APP_NAME,
    description="""
    ## DietConnect API

    Practice management for dietitians and meal tracking for their clients.

    ### Features
    - Organizations, team invitations and role-based access
    - Client profiles, weight tracking and referrals
    - Diet plans with day-by-day meals and food alternatives
    - Meal logging with photo upload and compliance scoring
    - Phone OTP sign-in for the mobile app

    ### Core Endpoints
    - `/organizations`, `/team` - Practice and staff
    - `/clients` - Client records and weight logs
    - `/diet-plans`, `/meals`, `/food-items` - Plan builder
    - `/meal-logs` - Logged meals and reviews
    - `/client-auth`, `/client` - Mobile app
    """,
    version="1.0.0",
    dependencies=[Depends(limit_api)],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Tag each request with an id and log its outcome."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "%s %s -> %s (%.1f ms) [%s]",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        request_id,
    )
    return response


# Staff (web dashboard)
app.include_router(auth.router)
app.include_router(organizations.router)
app.include_router(team.router)
app.include_router(clients.router)
app.include_router(compliance.router)
app.include_router(food_items.router)
app.include_router(diet_plans.router)
app.include_router(meals.router)
app.include_router(meal_logs.router)
app.include_router(notifications.router)
app.include_router(dashboard.router)
app.include_router(referrals.router)

# Clients (mobile app)
app.include_router(client_auth.router)
app.include_router(client_app.router)
app.include_router(client_referrals.router)


@app.get("/")
def root():
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": {
            "auth": "/auth",
            "organizations": "/organizations",
            "team": "/team",
            "clients": "/clients",
            "food_items": "/food-items",
            "diet_plans": "/diet-plans",
            "meals": "/meals",
            "meal_logs": "/meal-logs",
            "dashboard": "/dashboard",
            "referrals": "/admin/referrals",
            "client_auth": "/client-auth",
            "client_app": "/client",
        },
    }


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "environment": settings.ENVIRONMENT}
