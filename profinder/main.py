"""
ProFinder API entry point.

``app`` is the Socket.IO ASGI app wrapping ``fastapi_app``; serve it with
``uvicorn profinder.main:app``.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from profinder import __version__
from profinder.api.v1 import admin, connections, messages, users
from profinder.config import settings
from profinder.core.database import AsyncSessionLocal, engine
from profinder.core.errors import TransportError
from profinder.core.pubsub import change_broker
from profinder.core.websocket import connection_manager

logger = logging.getLogger(__name__)

API_ROUTERS = (
    (users.router, "/api/v1/users", "Users"),
    (connections.router, "/api/v1/connections", "Connections"),
    (messages.router, "/api/v1/messages", "Messages"),
    (admin.router, "/api/v1/admin", "Admin"),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and hold the change broker for the app's lifetime."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    await change_broker.connect()
    logger.info(f"ProFinder API {__version__} started ({settings.environment})")
    yield
    await change_broker.disconnect()
    await engine.dispose()
    logger.info("ProFinder API stopped")


app = FastAPI(
    title="ProFinder API",
    description="Professional discovery, connections and direct messaging",
    version=__version__,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# slowapi reads the limiter from app state
app.state.limiter = messages.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(TransportError)
async def transport_error_handler(request: Request, exc: TransportError):
    """Store or broker outages surface as 503 so clients can retry."""
    logger.error(f"Transport error on {request.url.path}: {exc} ({exc.original!r})")
    return JSONResponse(
        status_code=503,
        content={"detail": "Service temporarily unavailable. Please try again."},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe."""
    return {"status": "healthy", "environment": settings.environment}


async def _database_reachable() -> bool:
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Readiness: database check failed: {e}")
        return False


@app.get("/health/ready", tags=["Health"])
async def readiness_check():
    """
    Readiness probe.

    The broker check reports ``not_configured`` when no Redis URL is set;
    changes then fan out in-process only.
    """
    checks = {
        "database": await _database_reachable(),
        "redis": await change_broker.ping() if settings.redis_url else "not_configured",
    }
    ready = checks["database"] and checks["redis"] in (True, "not_configured")

    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "not ready", "checks": checks},
    )


for router, prefix, tag in API_ROUTERS:
    app.include_router(router, prefix=prefix, tags=[tag])

# /socket.io/* goes to Socket.IO, everything else to the API
fastapi_app = app
app = connection_manager.get_asgi_app(fastapi_app)
