from fastapi import FastAPI

from . import admin, auth, groups, health, promotions, submissions


def register_routes(app: FastAPI) -> None:
    """Attach all API routers to the FastAPI application."""
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(submissions.telegram_router)
    app.include_router(submissions.router)
    app.include_router(admin.router)
    app.include_router(groups.router)
    app.include_router(promotions.router)
    app.include_router(promotions.payments_router)
