"""
vector_store.py
===============
Vector similarity store for clinical cases, backed by a ChromaDB collection
using the cosine distance metric.

Each case is stored under its id with its embedding, its normalised text and
a metadata snapshot of the fields the retriever renders, so a search never
has to go back to the case database.

Chroma is synchronous; every call is pushed onto a worker thread so the
event loop is never blocked.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional

from case_records.schemas import RetrievedCaseSnippet
from rag_pipeline.case_text import as_text, field_value, normalize_case
from rag_pipeline.errors import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "clinical_cases"

_SNAPSHOT_FIELDS = (
    "case_number",
    "age_group",
    "gender",
    "chief_complaint",
    "tongue_diagnosis",
    "pulse_diagnosis",
    "pattern_identification",
    "prescription",
    "outcome",
    "learning_points",
)


def _snapshot(case: Any) -> Dict[str, str]:
    # Chroma rejects None metadata values, so blanks are simply left out.
    meta: Dict[str, str] = {}
    for name in _SNAPSHOT_FIELDS:
        value = as_text(field_value(case, name))
        if value:
            meta[name] = value
    return meta


class CaseVectorStore:
    """
    Similarity search over case embeddings.

    Either pass a ready Chroma client (tests use chromadb.EphemeralClient) or
    a persistence directory; in the latter case the PersistentClient is
    created on first use.
    """

    def __init__(
        self,
        persist_dir: str = "./chroma_db",
        collection_name: str = DEFAULT_COLLECTION,
        client: Any = None,
    ):
        self._persist_dir = persist_dir
        self._collection_name = collection_name
        self._client = client
        self._collection: Optional[Any] = None
        self._lock = Lock()

    # ── connection ────────────────────────────────────────────────────────

    def _get_collection(self) -> Any:
        if self._collection is None:
            with self._lock:
                if self._collection is None:
                    if self._client is None:
                        import chromadb  # type: ignore

                        Path(self._persist_dir).mkdir(parents=True, exist_ok=True)
                        self._client = chromadb.PersistentClient(path=self._persist_dir)
                        logger.info("Vector store backend: chroma (%s)", self._persist_dir)
                    self._collection = self._client.get_or_create_collection(
                        name     = self._collection_name,
                        metadata = {"hnsw:space": "cosine"},
                    )
                    logger.info(
                        "Vector collection '%s' ready (%d cases).",
                        self._collection_name,
                        self._collection.count(),
                    )
        return self._collection

    async def _run(self, action: str, fn, *args, **kwargs):
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except UpstreamError:
            raise
        except Exception as exc:
            raise UpstreamError(f"Vector store {action} failed: {exc}") from exc

    # ── public API ────────────────────────────────────────────────────────

    def _upsert(self, case_id: str, vector: List[float], document: str, metadata: Dict[str, str]) -> None:
        self._get_collection().upsert(
            ids        = [case_id],
            embeddings = [vector],
            documents  = [document],
            metadatas  = [metadata],
        )

    async def upsert(self, case: Any, vector: List[float]) -> None:
        """Index (or re-index) *case* under its id."""
        case_id = str(field_value(case, "id"))
        await self._run("upsert", self._upsert, case_id, list(vector), normalize_case(case), _snapshot(case))

    def _delete(self, case_id: str) -> None:
        self._get_collection().delete(ids=[case_id])

    async def delete(self, case_id: str) -> None:
        await self._run("delete", self._delete, case_id)

    def _count(self) -> int:
        return self._get_collection().count()

    async def count(self) -> int:
        return await self._run("count", self._count)

    def _search(self, query_vector: List[float], threshold: float, limit: int) -> List[RetrievedCaseSnippet]:
        collection = self._get_collection()
        total = collection.count()
        if total == 0 or limit <= 0:
            return []

        results = collection.query(
            query_embeddings = [query_vector],
            n_results        = min(limit, total),
            include          = ["metadatas", "distances"],
        )
        distances: List[float]          = (results.get("distances") or [[]])[0]
        metadatas: List[Dict[str, Any]] = (results.get("metadatas") or [[]])[0]

        matches: List[RetrievedCaseSnippet] = []
        for meta, dist in zip(metadatas, distances):
            similarity = 1.0 - float(dist)
            if similarity <= threshold:
                continue
            matches.append(RetrievedCaseSnippet(similarity=similarity, **(meta or {})))

        matches.sort(key=lambda m: m.similarity, reverse=True)
        return matches[:limit]

    async def search(
        self,
        query_vector: List[float],
        threshold: float,
        limit: int,
    ) -> List[RetrievedCaseSnippet]:
        """
        Return up to *limit* cases whose cosine similarity to *query_vector*
        is above *threshold*, best first.
        """
        return await self._run("search", self._search, list(query_vector), threshold, limit)
