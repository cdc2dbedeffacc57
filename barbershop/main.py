# barbershop/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlmodel import Session

from .config import get_settings
from .data import seed_admin, seed_default_catalog
from .db import engine, init_db
from .errors import BookingError
from .logging_config import configure_logging
from .routers import (
    auth_routes,
    providers_routes,
    reservations_routes,
    services_routes,
    users_routes,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    init_db()
    with Session(engine) as session:
        if settings.SEED_DEFAULT_CATALOG:
            seed_default_catalog(session)
        if settings.ADMIN_EMAIL and settings.ADMIN_PASSWORD:
            seed_admin(session, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)
    yield


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    logger.warning(
        f"{exc.code}: {exc.message}",
        extra={"error_code": exc.code, "request_path": request.url.path},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="Barbershop Booking API",
        version="0.1.0",
        lifespan=lifespan if use_lifespan else None,
    )

    app.add_exception_handler(BookingError, booking_error_handler)

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    app.include_router(auth_routes.router)
    app.include_router(users_routes.router)
    app.include_router(services_routes.router)
    app.include_router(providers_routes.router)
    app.include_router(reservations_routes.router)
    return app


configure_logging()
app = create_app()
