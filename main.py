"""
Main FastAPI application (entrypoint).

Responsibilities:
- Wire API routers (customer/admin)
- Register centralized exception handlers (domain errors -> JSON envelope)
- Provide middleware: request-id logging
- Add health / readiness endpoints
- Create DB tables on startup when a database is configured
Notes:
- The subscription core is a library; this app is one thin wrapper around it.
- In production use Alembic migrations instead of create_all.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
import uvicorn

from api import routes_user, routes_admin
from config.settings import settings
from core.db import engine, create_all
from core.exception_handlers import register_exception_handlers
from core.logging import configure_logging, request_logging_middleware
from core.response import ok, error

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.API_TITLE, version=settings.API_VERSION)

# CORS - adjust origins for production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(routes_user.router, prefix="", tags=["customer"])
app.include_router(routes_admin.router, prefix="/admin", tags=["admin"])

register_exception_handlers(app)

# Adds X-Request-ID header and logs every request
app.middleware("http")(request_logging_middleware)


@app.get("/health")
async def health():
    """Simple health endpoint used by load balancers and orchestrators."""
    return ok({"status": "ok"})


@app.get("/ready")
async def ready():
    """Readiness: check DB connectivity if configured."""
    if engine is None:
        return ok({"ready": True, "store": "memory"})
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return ok({"ready": True, "store": "database"})
    except Exception:
        logger.exception("Readiness check failed")
        return JSONResponse(status_code=503, content=error(code="db_unreachable", message="DB unavailable"))


@app.on_event("startup")
async def on_startup():
    """Create DB tables (development convenience). In production use Alembic migrations instead."""
    if engine is None:
        return
    try:
        await create_all(engine)
    except Exception as e:
        # Do not crash the process for a missing DB during local dev; /ready reports it
        logger.warning("DB initialization failed on startup: %s", e)


if __name__ == "__main__":
    # Run with: python main.py for local dev. For production use uvicorn/gunicorn with workers.
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
