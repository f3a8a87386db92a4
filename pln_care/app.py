# pln_care/app.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, settings as default_settings
from .db import Database
from .errors import register_exception_handlers
from .routers import auth as auth_router
from .routers import users as users_router
from .routers import complaints as complaints_router
from .routers import work_reports as work_reports_router
from .routers import public as public_router
from .utils import utcnow

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    database = database or Database(settings.DB_URL)
    # Ensure DB tables exist before the first request
    database.create_all()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("PLN Care API started (db=%s)", database.engine.url.render_as_string(hide_password=True))
        yield
        database.dispose()
        logger.info("Database handle closed")

    app = FastAPI(title="PLN Care API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Missing or malformed fields are plain 400s for the dashboard
    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    # --- Routers ---
    app.include_router(auth_router.router, prefix=API_PREFIX)
    app.include_router(users_router.router, prefix=API_PREFIX)
    app.include_router(complaints_router.router, prefix=API_PREFIX)
    app.include_router(work_reports_router.router, prefix=API_PREFIX)
    app.include_router(public_router.router, prefix=API_PREFIX)

    @app.get(f"{API_PREFIX}/health")
    def health():
        return {
            "status": "ok",
            "message": "PLN Care Server is running",
            "timestamp": utcnow().isoformat(),
        }

    return app


app = create_app()
