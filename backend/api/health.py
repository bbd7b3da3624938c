"""
api/health.py
=============
GET /api/health — liveness and readiness probe.
"""

import logging

from fastapi import APIRouter, Depends

from backend.config import Settings
from backend.dependencies import get_settings, get_vector_store
from rag_pipeline.errors import UpstreamError
from rag_pipeline.vector_store import CaseVectorStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/health")
async def health_check(
    settings: Settings = Depends(get_settings),
    vector_store: CaseVectorStore = Depends(get_vector_store),
):
    """Return service status and component readiness flags."""
    try:
        indexed = await vector_store.count()
        vector_ready = True
    except UpstreamError as exc:
        logger.warning("Health check: vector store unavailable (%s)", exc)
        indexed = 0
        vector_ready = False

    embedding_configured = settings.embedding_backend == "local" or bool(settings.openai_api_key)

    return {
        "status":               "ok",
        "vector_store_ready":   vector_ready,
        "indexed_cases":        indexed,
        "embedding_configured": embedding_configured,
        "llm_configured":       bool(settings.llm_api_key),
        "api_version":          "1.0.0",
    }
