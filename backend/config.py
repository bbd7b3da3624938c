"""
config.py
=========
Environment-driven settings.  `.env` at the project root is loaded by
backend.main before Settings.from_env() is called.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from case_records.database import DEFAULT_DATABASE_URL
from rag_pipeline.embedder import DEFAULT_LOCAL_MODEL, DEFAULT_OPENAI_MODEL
from rag_pipeline.llm_engine import DEFAULT_MAX_TOKENS
from rag_pipeline.retriever import DEFAULT_MATCH_COUNT, DEFAULT_MATCH_THRESHOLD


def _clean_env(name: str, default: str = "") -> str:
    value = os.getenv(name, default)
    return value.strip().strip('"').strip("'")


def _secret(name: str) -> str:
    """Placeholder values copied from .env.example count as unset."""
    value = _clean_env(name)
    return "" if value.startswith("your_") else value


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    chroma_persist_dir: str = "./chroma_db"
    chroma_collection: str = "clinical_cases"

    embedding_backend: str = "openai"        # openai | local
    openai_api_key: str = ""
    embedding_model: str = DEFAULT_OPENAI_MODEL
    local_embed_model: str = DEFAULT_LOCAL_MODEL

    llm_api_key: str = ""
    llm_base_url: Optional[str] = None
    llm_model: str = "gpt-4o"
    llm_max_tokens: int = DEFAULT_MAX_TOKENS

    match_threshold: float = DEFAULT_MATCH_THRESHOLD
    match_count: int = DEFAULT_MATCH_COUNT

    frontend_url: str = "http://localhost:3000"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url       = _clean_env("DATABASE_URL", DEFAULT_DATABASE_URL),
            chroma_persist_dir = _clean_env("CHROMA_PERSIST_DIR", "./chroma_db"),
            chroma_collection  = _clean_env("CHROMA_COLLECTION", "clinical_cases"),
            embedding_backend  = _clean_env("EMBEDDING_BACKEND", "openai").lower(),
            openai_api_key     = _secret("OPENAI_API_KEY"),
            embedding_model    = _clean_env("EMBEDDING_MODEL", DEFAULT_OPENAI_MODEL),
            local_embed_model  = _clean_env("LOCAL_EMBED_MODEL", DEFAULT_LOCAL_MODEL),
            llm_api_key        = _secret("LLM_API_KEY"),
            llm_base_url       = _clean_env("LLM_BASE_URL") or None,
            llm_model          = _clean_env("LLM_MODEL", "gpt-4o"),
            llm_max_tokens     = int(_clean_env("LLM_MAX_TOKENS", str(DEFAULT_MAX_TOKENS))),
            match_threshold    = float(_clean_env("MATCH_THRESHOLD", str(DEFAULT_MATCH_THRESHOLD))),
            match_count        = int(_clean_env("MATCH_COUNT", str(DEFAULT_MATCH_COUNT))),
            frontend_url       = _clean_env("FRONTEND_URL", "http://localhost:3000"),
        )
