"""
FastAPI application bootstrap with: \n
- Lifespan-managed database initialization (tables created if missing) \n
- CORS configured for the frontend origins \n
- JSON error bodies: every error answers `{"error": <message>}` \n
- Unauthenticated health check \n

Environment contract (from `settings`): \n
- CORS_ORIGINS / FRONTEND_URL: allowed CORS origins. \n
- PORT: port used when run as a script. \n
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from medcards.api.fast_api import auth_router, router
from medcards.api.models import HealthCheck
from medcards.database.config.config import settings
from medcards.database.config.connection_engine import init_db

logger = logging.getLogger("uvicorn")
"""Logger instance for capturing and emitting Uvicorn server logs."""


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    App lifespan manager.

    Notes
    ------------
    - On startup: create any missing tables.
    - On shutdown: nothing to release; connections are pooled by the engine.
    """
    logger.info("Initializing database...")
    init_db()
    logger.info("Database ready.")
    yield
    logger.info("App shutting down.")


app = FastAPI(title="MedCards API", lifespan=lifespan)
"""Instantiates the FastAPI application object with the lifespan handler above."""

# -----------------------
# CORS configuration
# -----------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -----------------------
# Error bodies
# -----------------------
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render the first validation problem as `field: message` with status 400."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc) or "Internal server error"})


# -----------------------
# API routes
# -----------------------
app.include_router(auth_router)
app.include_router(router)


@app.get("/health", response_model=HealthCheck)
async def health():
    return HealthCheck(status="ok", timestamp=datetime.now(timezone.utc))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("medcards.main:app", host="0.0.0.0", port=settings.PORT)
