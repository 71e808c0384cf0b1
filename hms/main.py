from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from hms.db import filters as _filters  # noqa: F401  (register SQLAlchemy filters)
from hms.db.init_db import init_db
from hms.db.session import build_engine, build_session_factory
from hms.logging_config import configure_app_logging
from hms.routers import appointments, auth, billing, doctors, health, patients, prescriptions, users
from hms.security.config import load_security_config
from hms.security.dependencies import enforce_authentication
from hms.security.tokens import TokenIssuer
from hms.settings import Settings, get_settings

logger = logging.getLogger(__name__)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse({"message": exc.detail}, status_code=exc.status_code, headers=exc.headers)


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.info("Integrity error path=%s method=%s", request.url.path, request.method)
    return JSONResponse({"message": "Request conflicts with existing data"}, status_code=400)


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error path=%s method=%s", request.url.path, request.method)
    return JSONResponse({"message": "Database error"}, status_code=500)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        configure_app_logging(settings.log_level)
        logger.info("App startup beginning")

        app.state.security_config = load_security_config(settings.resolved_security_config_path())
        logger.info("Loaded security config: %s", settings.resolved_security_config_path())

        engine = build_engine(settings.resolved_db_url())
        app.state.engine = engine
        app.state.session_factory = build_session_factory(engine)
        init_db(engine, app.state.session_factory, settings)
        logger.info("Database initialized (tables ensured + bootstrap admin if configured)")

        if settings.uses_dev_secret:
            logger.warning("Using the development JWT secret; set HMS_JWT_SECRET before deploying")
        app.state.token_issuer = TokenIssuer(
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            ttl_minutes=settings.access_token_ttl_minutes,
        )

        yield

        # Shutdown
        engine.dispose()
        logger.info("Database engine disposed")

    # Global dependency: every route is authenticated unless the security YAML marks it public.
    app = FastAPI(title="Hospital Management System", dependencies=[Depends(enforce_authentication)], lifespan=lifespan)
    app.state.settings = settings

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(patients.router)
    app.include_router(doctors.router)
    app.include_router(appointments.router)
    app.include_router(prescriptions.router)
    app.include_router(billing.router)

    return app


app = create_app()
