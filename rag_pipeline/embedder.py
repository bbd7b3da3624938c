"""
embedder.py
===========
Convert free text into dense embedding vectors.

Backends:
  openai  — OpenAI embeddings API (text-embedding-3-small by default).
  local   — sentence-transformers model run in-process (offline).

build_embedding_provider() returns None when the selected backend has no
credential; callers treat that as "no embedding capability configured".
"""

from __future__ import annotations

import asyncio
import logging
from threading import Lock
from typing import Any, Dict, List, Optional, Protocol

from rag_pipeline.errors import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_MODEL = "text-embedding-3-small"
DEFAULT_LOCAL_MODEL  = "paraphrase-multilingual-MiniLM-L12-v2"


class EmbeddingProvider(Protocol):
    async def embed(self, text: str) -> List[float]:
        ...


# ---------------------------------------------------------------------------
# OpenAI embeddings
# ---------------------------------------------------------------------------

class OpenAIEmbeddingProvider:
    """Embeds text through the OpenAI embeddings endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_OPENAI_MODEL,
        base_url: Optional[str] = None,
        client: Any = None,
    ):
        if client is None:
            from openai import AsyncOpenAI  # type: ignore

            client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self._client = client
        self.model = model

    async def embed(self, text: str) -> List[float]:
        try:
            response = await self._client.embeddings.create(model=self.model, input=text)
        except Exception as exc:
            raise UpstreamError(f"Embedding request failed: {exc}") from exc

        data = getattr(response, "data", None) or []
        if not data or not getattr(data[0], "embedding", None):
            raise UpstreamError("Embedding response contained no vector.")
        return list(data[0].embedding)


# ---------------------------------------------------------------------------
# Local sentence-transformers
# ---------------------------------------------------------------------------

_st_models: Dict[str, Any] = {}
_model_lock = Lock()


def _load_st_model(model_name: str) -> Any:
    model = _st_models.get(model_name)
    if model is None:
        with _model_lock:
            model = _st_models.get(model_name)
            if model is None:
                from sentence_transformers import SentenceTransformer  # type: ignore

                model = SentenceTransformer(model_name)
                _st_models[model_name] = model
                logger.info("Embedder backend: sentence_transformers (%s)", model_name)
    return model


class SentenceTransformerEmbeddingProvider:
    """Embeds text with a local sentence-transformers model."""

    def __init__(self, model_name: str = DEFAULT_LOCAL_MODEL):
        self.model_name = model_name

    def _encode(self, text: str) -> List[float]:
        model = _load_st_model(self.model_name)
        vec = model.encode(
            [text],
            show_progress_bar=False,
            convert_to_numpy=True,
            normalize_embeddings=True,
        )[0]
        return vec.tolist()

    async def embed(self, text: str) -> List[float]:
        try:
            return await asyncio.to_thread(self._encode, text)
        except Exception as exc:
            raise UpstreamError(f"Local embedding failed: {exc}") from exc


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def build_embedding_provider(
    backend: str,
    api_key: str = "",
    model: str = DEFAULT_OPENAI_MODEL,
    local_model: str = DEFAULT_LOCAL_MODEL,
) -> Optional[EmbeddingProvider]:
    """Return the configured provider, or None when it cannot be used."""
    backend = (backend or "openai").lower()
    if backend == "local":
        return SentenceTransformerEmbeddingProvider(local_model)
    if not api_key:
        return None
    return OpenAIEmbeddingProvider(api_key=api_key, model=model)
