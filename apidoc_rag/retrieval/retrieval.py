"""Retrieval Module for the API docs RAG app

This module owns the process-wide retrieval context: the vector store, the
documentation corpus and the initialization guard that fills the store.

Key Features:
- Semantic search over the whole index, or scoped to one platform.
- Direct corpus lookup of every section for a platform (no ranking).
- Single-flight initialization: concurrent callers share one ingestion pass
  through a shared `Future`; a failed pass clears the guard so it can be retried.
- Forced reinitialization clears the store first, then re-ingests every platform.
- Business Context: Feeds the query router with the documentation sections the
  answer generator should use.

Usage:
  from apidoc_rag.retrieval.retrieval import Retriever
  retriever = Retriever()
  retriever.initialize()          # no-op when the store is already populated
  sections = retriever.search_relevant_docs("How do I create a payment?", limit=2)

Requires: see storage and ingestion modules.
"""

import logging
import threading
from concurrent.futures import Future, wait
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from apidoc_rag.ingestion.ingestion import DocumentationCorpus, DocumentationSection, Platform
from apidoc_rag.storage.storage import DEFAULT_STORE_PATH, IndexPersistenceError, VectorStore

logger = logging.getLogger(__name__)


class IndexState(str, Enum):
    EMPTY = 'empty'
    INGESTING = 'ingesting'
    READY = 'ready'
    FAILED = 'failed'


class Retriever:
    """Handles index initialization, semantic search and platform lookups."""

    def __init__(self,
                 vector_store: Optional[VectorStore] = None,
                 corpus: Optional[DocumentationCorpus] = None,
                 store_path: str = DEFAULT_STORE_PATH):
        """
        Initialize retriever with a vector store and a documentation corpus.

        Args:
            vector_store: Existing store; built from `store_path` when omitted.
            corpus: Documentation provider; the bundled corpus when omitted.
            store_path: Where a new store persists its entries.
        """
        self.vector_store = vector_store or VectorStore(store_path=store_path)
        self.corpus = corpus or DocumentationCorpus()
        self._guard = threading.Lock()
        self._pending: Optional[Future] = None
        self.state = IndexState.READY if self.vector_store.is_initialized() else IndexState.EMPTY

    def initialize(self, force: bool = False) -> int:
        """
        Populate the vector store with every platform's documentation.

        Args:
            force: Clear the store and rebuild even if it is already populated.

        Returns:
            Number of documents in the store afterwards.
        """
        with self._guard:
            pending = self._pending
            in_flight = pending is not None and not pending.done()
            owner = False
            if not in_flight:
                # entries left by a failed pass are partial and must be rebuilt
                failed_before = self.state is IndexState.FAILED
                if not force and not failed_before and self.vector_store.is_initialized():
                    self.state = IndexState.READY
                    logger.info("Vector store already initialized with %d documents", self.vector_store.count())
                    return self.vector_store.count()
                pending = self._pending = Future()
                self.state = IndexState.INGESTING
                owner = True

        if not owner:
            if force:
                # A forced rebuild waits for the running pass, then starts its own.
                wait([pending])
                return self.initialize(force=True)
            return pending.result()

        try:
            count = self._ingest(force or failed_before)
        except BaseException as e:
            with self._guard:
                self._pending = None
                self.state = IndexState.FAILED
            pending.set_exception(e)
            if isinstance(e, Exception):
                logger.error("Error initializing vector store: %s", e)
                self._discard_partial()
            raise

        with self._guard:
            self.state = IndexState.READY
        pending.set_result(count)
        return count

    def _discard_partial(self) -> None:
        if not self.vector_store.is_initialized():
            return
        try:
            self.vector_store.clear()
        except IndexPersistenceError as e:
            # state stays FAILED, so the next initialize() clears before re-ingesting
            logger.error("Could not discard partially ingested documents: %s", e)

    def _ingest(self, clear_first: bool) -> int:
        logger.info("Initializing vector store...")
        if clear_first:
            logger.info("Force re-initializing: clearing existing store...")
            self.vector_store.clear()

        docs_by_platform = self.corpus.fetch_all()
        for platform, sections in docs_by_platform.items():
            self.vector_store.add_documents(sections, platform.value)

        total = self.vector_store.count()
        logger.info("Vector store initialized with %d documents", total)
        for platform, sections in docs_by_platform.items():
            logger.info("   - %s: %d documents", platform.value, len(sections))
        return total

    def ensure_initialized(self) -> None:
        """Initialize if needed; failures are logged, never raised."""
        try:
            self.initialize()
        except Exception:
            logger.exception("Vector store initialization failed")

    def search_relevant_docs(self, query: str, limit: int = 5) -> List[DocumentationSection]:
        """Top-`limit` sections across every platform."""
        return [entry.section for entry in self.vector_store.search(query, limit)]

    def search_docs_for_platform(self, query: str, platform: Union[str, Platform], limit: int = 5) -> List[DocumentationSection]:
        """Top-`limit` sections restricted to one platform."""
        platform = Platform.from_name(platform)
        return [entry.section for entry in self.vector_store.search(query, limit, platform.value)]

    def get_all_docs_for_platform(self, platform: Union[str, Platform]) -> List[DocumentationSection]:
        """Every corpus section for a platform, bypassing the index. Unknown platforms give []."""
        try:
            platform = Platform.from_name(platform)
        except ValueError:
            logger.warning("Unknown platform %r", platform)
            return []
        return self.corpus.fetch_sections(platform)

    def is_initialized(self) -> bool:
        return self.vector_store.is_initialized()

    def status(self) -> Dict[str, Any]:
        """Get retrieval stats."""
        return {
            'initialized': self.is_initialized(),
            'document_count': self.vector_store.count(),
            'state': self.state.value,
        }


# Example usage (for testing)
if __name__ == "__main__":
    retriever = Retriever()
    retriever.initialize()
    for doc in retriever.search_relevant_docs("How do I list repository issues?", limit=2):
        print(f"{doc.platform}: {doc.title} ({doc.method} {doc.endpoint})")
    print(f"Stats: {retriever.status()}")
