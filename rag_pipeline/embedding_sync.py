"""
embedding_sync.py
=================
(Re)compute and persist case embeddings.

  embed_one          — one case, errors surface to the caller
  embed_all_pending  — every case whose embedding is null, one at a time;
                       a failing case is recorded and the batch moves on
  run_background_embedding
                     — fire-and-forget variant used after a case is saved;
                       never raises, only logs

Embeddings are eventually consistent with case content.  Two concurrent
embed_one calls for the same case are not coordinated: the last write wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from case_records.repository import CaseRepository
from case_records.schemas import ClinicalCase
from rag_pipeline.case_text import normalize_case
from rag_pipeline.embedder import EmbeddingProvider
from rag_pipeline.errors import CasebookError, ConfigurationError, UpstreamError
from rag_pipeline.vector_store import CaseVectorStore

logger = logging.getLogger(__name__)


@dataclass
class EmbeddingBatchSummary:
    total: int = 0
    updated: int = 0
    errors: List[str] = field(default_factory=list)


class EmbeddingSyncService:

    def __init__(
        self,
        repository: CaseRepository,
        provider: Optional[EmbeddingProvider],
        vector_store: CaseVectorStore,
    ):
        if provider is None:
            raise ConfigurationError("OpenAI API 키가 설정되지 않았습니다.")
        self._repository = repository
        self._provider = provider
        self._store = vector_store

    async def embed_one(self, case_id: str) -> ClinicalCase:
        case = await self._repository.get_by_id(case_id)
        await self._embed_case(case)
        return case

    async def embed_all_pending(self) -> EmbeddingBatchSummary:
        pending = await self._repository.list_missing_embedding()
        summary = EmbeddingBatchSummary(total=len(pending))

        for case in pending:
            try:
                await self._embed_case(case)
            except Exception as exc:
                message = exc.message if isinstance(exc, CasebookError) else (str(exc) or "실패")
                summary.errors.append(f"{case.case_number}: {message}")
                logger.warning("Embedding failed for case %s: %s", case.case_number, message)
            else:
                summary.updated += 1

        logger.info(
            "Embedding batch finished: %d/%d updated, %d failed.",
            summary.updated, summary.total, len(summary.errors),
        )
        return summary

    async def _embed_case(self, case: ClinicalCase) -> None:
        vector = await self._provider.embed(normalize_case(case))

        await self._store.upsert(case, vector)
        try:
            await self._repository.update_embedding(case.id, vector)
        except Exception:
            await self._restore_index(case)
            raise

    async def _restore_index(self, case: ClinicalCase) -> None:
        """Put the index back the way it was before a failed record write."""
        try:
            if case.embedding:
                await self._store.upsert(case, case.embedding)
            else:
                await self._store.delete(case.id)
        except UpstreamError as exc:
            logger.warning("Could not restore index entry for case %s: %s", case.case_number, exc)


async def run_background_embedding(
    session_factory: Callable[[], Any],
    provider: Optional[EmbeddingProvider],
    vector_store: CaseVectorStore,
    case_id: str,
) -> None:
    """
    Embed one case outside the request that saved it.

    Opens its own session since the request's session is gone by the time
    background tasks run.  Failures are logged and dropped; the case keeps
    its previous (possibly stale or missing) embedding.
    """
    if provider is None:
        logger.info("Embedding provider not configured; case %s left unembedded.", case_id)
        return

    try:
        async with session_factory() as session:
            service = EmbeddingSyncService(CaseRepository(session), provider, vector_store)
            await service.embed_one(case_id)
        logger.info("Background embedding stored for case %s.", case_id)
    except Exception as exc:
        logger.warning("Background embedding failed for case %s: %s", case_id, exc)
