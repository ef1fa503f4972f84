"""
Main FastAPI application for the Copypanda backend.
Handles CORS, request logging middleware, lifespan events, and router registration.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import close_db, init_db
from app.routers import articles, health, presets, runs
from app.services.llm_client import OllamaTextGenerator
from app.services.run_manager import run_manager

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Startup / shutdown helpers
# ---------------------------------------------------------------------------

async def _check_database() -> bool:
    """Initialise DB tables and verify the connection.  Returns True on success."""
    try:
        await init_db()
        logger.info("✓ Database connection OK")
        return True
    except Exception as exc:
        logger.error("✗ Database connection failed: %s", exc)
        raise


async def _check_ollama(generator: OllamaTextGenerator) -> dict:
    """
    Verify Ollama is reachable and that the configured model is pulled.
    Never raises; warnings are logged instead.
    """
    available = await generator.list_models()
    if available is None:
        logger.error("✗ Ollama unreachable at %s", generator.base_url)
        return {"reachable": False, "llm_model": False, "models": []}

    logger.info("✓ Ollama reachable — available models: %s", available)
    has_model = generator.has_model(available)
    if has_model:
        logger.info("  ✓ LLM model '%s' is available", generator.model)
    else:
        logger.warning(
            "  ⚠ LLM model '%s' not found — run: ollama pull %s",
            generator.model,
            generator.model,
        )
    return {"reachable": True, "llm_model": has_model, "models": available}


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler."""
    logger.info("=" * 60)
    logger.info("  Starting Copypanda backend …")
    logger.info("=" * 60)

    # 1. Database (required; raises on failure)
    await _check_database()

    # 2. Ollama (optional; logs warnings but continues)
    ollama_status = await _check_ollama(OllamaTextGenerator())
    if not ollama_status["reachable"]:
        logger.warning(
            "Ollama is not running.  Start it with: ollama serve\n"
            "  Article generation runs will fail until Ollama is up."
        )

    logger.info(
        "  Pipeline: section concurrency=%d, failure policy=%s",
        settings.SECTION_CONCURRENCY,
        settings.STAGE_FAILURE_POLICY,
    )
    logger.info("=" * 60)
    logger.info("  Copypanda backend ready on http://%s:%d", settings.HOST, settings.PORT)
    logger.info("  Swagger UI : http://%s:%d/docs", settings.HOST, settings.PORT)
    logger.info("  Health     : http://%s:%d/api/health", settings.HOST, settings.PORT)
    logger.info("=" * 60)

    yield  # ← server is running

    logger.info("Shutting down Copypanda backend …")
    await run_manager.shutdown()
    await close_db()
    logger.info("✓ Shutdown complete.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Copypanda API",
    description=(
        "**Copypanda** — AI-assisted article authoring.\n\n"
        "Define a title, sections and a style preset; a background run "
        "writes, assembles and edits the article.\n\n"
        "Key endpoints:\n"
        "- `POST /api/presets` — save a generation preset\n"
        "- `POST /api/articles/generate` — start a generation run\n"
        "- `GET  /api/runs/{run_id}` — poll run progress\n"
        "- `GET  /api/runs/{run_id}/stream` — stream run progress (SSE)\n"
        "- `GET  /api/articles/{id}` — read the finished article\n"
    ),
    version="0.1.0",
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

    # Skip noisy polling from the frontend
    path = request.url.path
    if path not in ("/api/health/", "/") and not path.startswith("/api/runs/"):
        logger.info(
            "%s %s → %d  (%.2f ms)",
            request.method,
            path,
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
    """Return a structured JSON error for any unhandled exception."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error": str(exc),
            "path": str(request.url.path),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(health.router,    prefix="/api/health",   tags=["Health"])
app.include_router(presets.router,   prefix="/api/presets",  tags=["Presets"])
app.include_router(articles.router,  prefix="/api/articles", tags=["Articles"])
app.include_router(runs.router,      prefix="/api/runs",     tags=["Runs"])


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    """API root: basic service info."""
    return {
        "name": "Copypanda API",
        "version": "0.1.0",
        "description": "AI-assisted article authoring backend",
        "docs": "/docs",
        "health": "/api/health",
        "endpoints": {
            "presets": "/api/presets",
            "articles": "/api/articles",
            "runs": "/api/runs",
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
