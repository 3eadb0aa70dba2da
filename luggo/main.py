"""LUGGO FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from luggo import __version__
from luggo.config import get_settings
from luggo.database import close_db, create_tables, get_db, get_db_session, init_db, ping_db
from luggo.errors import register_exception_handlers
from luggo.logging_config import configure_logging, get_logger
from luggo.middleware.request_context import RequestContextMiddleware

logger = get_logger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: init DB (and optionally seed) on startup, cleanup on shutdown."""
    configure_logging(settings)

    logger.info("starting_database_init")
    await init_db()
    if settings.database_auto_create:
        await create_tables()
    if settings.seed_on_startup:
        from luggo.seed import seed_defaults

        async with get_db_session() as db:
            await seed_defaults(db)
            await db.commit()

    logger.info("application_started", api_prefix=settings.api_prefix)
    yield

    logger.info("shutting_down")
    await close_db()
    logger.info("shutdown_complete")


app = FastAPI(
    title=settings.project_name,
    description="Location reviews with community votes and author reputation",
    version=__version__,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestContextMiddleware)

register_exception_handlers(app)

# --- Routers ---
from luggo.routes.admin import router as admin_router  # noqa: E402
from luggo.routes.places import router as places_router  # noqa: E402
from luggo.routes.reputation import router as reputation_router  # noqa: E402
from luggo.routes.reviews import router as reviews_router  # noqa: E402
from luggo.routes.session import router as session_router  # noqa: E402

app.include_router(places_router, prefix=settings.api_prefix)
app.include_router(reviews_router, prefix=settings.api_prefix)
app.include_router(reputation_router, prefix=settings.api_prefix)
app.include_router(session_router, prefix=settings.api_prefix)
app.include_router(admin_router, prefix=settings.api_prefix)


@app.get("/health")
@app.get(f"{settings.api_prefix}/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check endpoint; probes the store."""
    try:
        await ping_db(db)
    except (OperationalError, InterfaceError, OSError) as exc:
        logger.error("health_check_failed", error=str(exc))
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "service": "luggo"},
        )
    return {"status": "ok", "service": "luggo"}
