"""
main.py
=======
FastAPI application entry point for the Hanbang Casebook backend.

Run locally:
  uvicorn backend.main:app --reload --port 8000

The lifespan handler builds the process-wide collaborators (database engine,
session factory, vector store) once at startup and disposes of them on
shutdown.  Provider clients are created per request in backend.dependencies.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv  # type: ignore
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load .env from project root (one level above this file's package)
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))

from backend.api.cases import router as cases_router  # noqa: E402
from backend.api.chat import router as chat_router  # noqa: E402
from backend.api.embed import router as embed_router  # noqa: E402
from backend.api.health import router as health_router  # noqa: E402
from backend.api.stats import router as stats_router  # noqa: E402
from backend.config import Settings  # noqa: E402
from case_records.database import create_engine, create_session_factory, init_db  # noqa: E402
from rag_pipeline.errors import CasebookError  # noqa: E402
from rag_pipeline.vector_store import CaseVectorStore  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan: startup / shutdown
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the database schema and shared collaborators before first request."""
    settings: Settings = app.state.settings
    logger.info("Casebook backend starting up…")

    engine = create_engine(settings.database_url)
    await init_db(engine)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    # Chroma connects lazily on first use
    app.state.vector_store = CaseVectorStore(
        persist_dir     = settings.chroma_persist_dir,
        collection_name = settings.chroma_collection,
    )

    if not settings.llm_api_key:
        logger.warning("LLM_API_KEY not set; AI advisor requests will fail with 500.")
    if settings.embedding_backend != "local" and not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not set; similar-case retrieval is disabled.")

    logger.info("All components initialised. Ready.")
    yield

    await engine.dispose()
    logger.info("Casebook backend shutting down.")


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------

async def casebook_error_handler(request: Request, exc: CasebookError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ())[1:]) or 'body'}: {err.get('msg')}"
        for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": problems or "잘못된 요청입니다."})


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    app = FastAPI(
        title       = "Hanbang Casebook API",
        description = (
            "Clinical case records for traditional-medicine practitioners, "
            "with a similar-case-grounded AI advisor and statistics dashboard."
        ),
        version     = "1.0.0",
        docs_url    = "/docs",
        redoc_url   = "/redoc",
        lifespan    = lifespan,
    )
    app.state.settings = settings

    # ── CORS ──────────────────────────────────────────────────────────────
    origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        settings.frontend_url,
    ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins     = origins,
        allow_credentials = True,
        allow_methods     = ["*"],
        allow_headers     = ["*"],
    )

    # ── Errors ────────────────────────────────────────────────────────────
    app.add_exception_handler(CasebookError, casebook_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # ── Routers ───────────────────────────────────────────────────────────
    app.include_router(health_router)
    app.include_router(chat_router)
    app.include_router(embed_router)
    app.include_router(cases_router)
    app.include_router(stats_router)

    return app


app = create_app()
