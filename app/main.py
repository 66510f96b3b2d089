"""
Main FastAPI application for the manuscript analyzer backend.
Handles CORS, request logging middleware, lifespan events, and router registration.
"""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.routers import health, manuscripts

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler."""
    logger.info("=" * 60)
    logger.info("  Starting manuscript analyzer …")
    logger.info("=" * 60)

    if settings.GEMINI_API_KEY:
        logger.info("✓ GEMINI_API_KEY is set")
    else:
        logger.warning(
            "⚠ GEMINI_API_KEY is not set; POST /analyze will return 500 until it is"
        )
    logger.info("✓ Model fallback order: %s", ", ".join(settings.get_model_order()))
    logger.info(
        "✓ Rate-limit backoff: %s s (max %d attempts per model, %.0f s budget, "
        "%.0f s request deadline)",
        settings.RATE_LIMIT_BACKOFF_SECONDS,
        settings.MODEL_MAX_ATTEMPTS,
        settings.BACKOFF_BUDGET_SECONDS,
        settings.REQUEST_DEADLINE_SECONDS,
    )

    logger.info("=" * 60)
    logger.info("  Manuscript analyzer ready on http://%s:%d", settings.HOST, settings.PORT)
    logger.info("  Swagger UI : http://%s:%d/docs", settings.HOST, settings.PORT)
    logger.info("  Health     : http://%s:%d/api/health", settings.HOST, settings.PORT)
    logger.info("=" * 60)

    yield  # ← server is running

    logger.info("✓ Shutdown complete.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Manuscript Analyzer API",
    description=(
        "Upload a manuscript (PDF, DOCX or plain text) and get editorial, "
        "genre-fit and market spider scores, evidence snippets, language "
        "statistics and an LLM summary.\n\n"
        "Key endpoints:\n"
        "- `POST /analyze`: analyze an uploaded manuscript\n"
        "- `GET  /api/health`: configuration status\n"
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request / response logging middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every request with method, path, status code, and elapsed time.
    Attaches an ``X-Process-Time`` header (milliseconds) to every response.
    """
    t0 = time.monotonic()
    response = await call_next(request)
    elapsed_ms = round((time.monotonic() - t0) * 1000, 2)

    # Skip noisy health-check polling from the frontend
    if request.url.path not in ("/api/health", "/api/health/", "/"):
        logger.info(
            "%s %s → %d  (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )

    response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
    return response


# ---------------------------------------------------------------------------
# Global exception handler
# ---------------------------------------------------------------------------

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return the ``{"error": ...}`` body for any unhandled exception."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": str(exc) or "Internal server error"},
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(health.router,      prefix="/api/health", tags=["Health"])
app.include_router(manuscripts.router,                       tags=["Manuscripts"])


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    """API root: basic service info."""
    return {
        "name": "Manuscript Analyzer API",
        "version": "1.0.0",
        "description": "LLM-assisted manuscript scoring backend",
        "docs": "/docs",
        "health": "/api/health",
        "endpoints": {
            "analyze": "/analyze",
        },
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level="info",
    )
