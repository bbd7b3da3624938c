"""
retriever.py
============
Best-effort retrieval of similar past cases for a free-text question.

  1. No embedding provider configured → empty context, store untouched.
  2. Embed the question.
  3. Ask the vector store for the top-N cases above the similarity floor.
  4. Render each match as a fixed multi-line block, best match first.

Any failure along the way yields an empty context block: retrieval must
never stop an answer from being attempted.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from case_records.schemas import RetrievedCaseSnippet
from rag_pipeline.embedder import EmbeddingProvider
from rag_pipeline.vector_store import CaseVectorStore

logger = logging.getLogger(__name__)

DEFAULT_MATCH_THRESHOLD = 0.3
DEFAULT_MATCH_COUNT     = 10
BLOCK_SEPARATOR         = "\n---\n"
_MISSING                = "-"


def _v(value: Optional[str]) -> str:
    return value if value else _MISSING


def render_snippet(snippet: RetrievedCaseSnippet) -> str:
    header = f"[{snippet.case_number or '사례'}] (유사도: {snippet.similarity:.2f})"
    return "\n".join([
        header,
        f"- 연령/성별: {_v(snippet.age_group)} {_v(snippet.gender)}",
        f"- 주소증: {_v(snippet.chief_complaint)}",
        f"- 설진: {_v(snippet.tongue_diagnosis)}",
        f"- 맥진: {_v(snippet.pulse_diagnosis)}",
        f"- 변증: {_v(snippet.pattern_identification)}",
        f"- 처방: {_v(snippet.prescription)}",
        f"- 결과: {_v(snippet.outcome)}",
        f"- 배운점: {_v(snippet.learning_points)}",
    ])


def render_context(snippets: List[RetrievedCaseSnippet]) -> str:
    return BLOCK_SEPARATOR.join(render_snippet(s) for s in snippets)


class ContextRetriever:

    def __init__(
        self,
        provider: Optional[EmbeddingProvider],
        vector_store: Optional[CaseVectorStore],
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        limit: int = DEFAULT_MATCH_COUNT,
    ):
        self._provider = provider
        self._store = vector_store
        self.threshold = threshold
        self.limit = limit

    async def retrieve(self, question: str) -> str:
        """Return the rendered context block, or "" when nothing is usable."""
        if self._provider is None or self._store is None:
            return ""

        try:
            query_vec = await self._provider.embed(question)
            matches = await self._store.search(query_vec, self.threshold, self.limit)
            if not matches:
                return ""
            logger.debug("Retrieved %d similar cases.", len(matches))
            return render_context(matches)
        except Exception as exc:
            logger.warning("Case retrieval failed (%s); answering without context.", exc)
            return ""
