"""
Workforce HR: Application entry point.

This is the **only** file that assembles the app.  Business rules live in
``domain/``, persistence in ``repositories/`` and ``models/``, and the
transaction boundaries in ``services/``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import select

from workforce.api.v1.api import api_router
from workforce.core.config import settings
from workforce.core.exceptions import register_exception_handlers
from workforce.db.base import Base
from workforce.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from workforce.models.attendance import Attendance  # noqa: F401
from workforce.models.leave import LeaveRequest  # noqa: F401
from workforce.models.user import User

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    # Seed the first director so the employee directory can be populated
    async with async_session_factory() as session:
        result = await session.execute(
            select(User).where(User.email == settings.FIRST_DIRECTOR_EMAIL)
        )
        if result.scalar_one_or_none() is None:
            session.add(
                User(
                    email=settings.FIRST_DIRECTOR_EMAIL,
                    full_name=settings.FIRST_DIRECTOR_NAME,
                    role="DIRECTOR",
                    requires_time_tracking=False,
                )
            )
            await session.commit()
            logger.info("Default director created: %s", settings.FIRST_DIRECTOR_EMAIL)

    logger.info("%s v%s started", settings.PROJECT_NAME, settings.VERSION)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Attendance tracking and leave approval workflow",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    # Mount API v1
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    return application


app = create_app()
