"""Storage Module for the API docs RAG app

This module manages the vector index: one entry per documentation section,
brute-force cosine search, and JSON persistence.

Key Features:
- Entries keep the vectorized text, its embedding and the section metadata.
- The full entry list is written to disk after every single `add`, so the file
  always reflects each completed insert. Writes go through a temp file and
  `os.replace`, and a lock keeps concurrent adds from losing each other's updates.
- Loading reuses stored embeddings verbatim; a malformed file is logged and the
  index starts empty.
- Business Context: Small, fixed corpus (about a hundred sections), so exact
  search over every entry is fast enough and keeps rankings reproducible.

Usage:
  from apidoc_rag.storage.storage import VectorStore
  store = VectorStore(store_path='.vector-store.json')
  store.add_documents(sections, 'github')
  entries = store.search("list repository issues", limit=3, platform_filter='github')

Requires: numpy (via embeddings), pydantic.
"""

import json
import logging
import os
import tempfile
import threading
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from apidoc_rag.embeddings.embeddings import EMBEDDING_DIM, EmbeddingGenerator
from apidoc_rag.ingestion.ingestion import DocumentationSection

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = os.getenv('APIDOC_STORE_PATH', '.vector-store.json')


class IndexPersistenceError(RuntimeError):
    """Raised when the index cannot be written to disk."""


class EntryMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    endpoint: Optional[str] = None
    method: Optional[str] = None
    platform: str
    content: str

    @model_validator(mode='before')
    @classmethod
    def accept_api_key(cls, data: Any) -> Any:
        # Older store files tag the platform as "api".
        if isinstance(data, dict) and 'platform' not in data and 'api' in data:
            data = dict(data)
            data['platform'] = data.pop('api')
        return data


class IndexEntry(BaseModel):
    """A vectorized documentation section. Never mutated after creation."""
    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    embedding: List[float]
    metadata: EntryMetadata

    @field_validator('embedding')
    @classmethod
    def check_dimension(cls, v: List[float]) -> List[float]:
        if len(v) != EMBEDDING_DIM:
            raise ValueError(f"embedding must have {EMBEDDING_DIM} components, got {len(v)}")
        return v

    @property
    def platform(self) -> str:
        return self.metadata.platform

    @property
    def section(self) -> DocumentationSection:
        return DocumentationSection(
            title=self.metadata.title,
            content=self.metadata.content,
            endpoint=self.metadata.endpoint,
            method=self.metadata.method,
            platform=self.metadata.platform,
        )

    def to_record(self) -> Dict[str, Any]:
        record = self.model_dump()
        record['metadata'] = self.metadata.model_dump(exclude_none=True)
        return record


class VectorStore:
    """In-process vector index persisted as a single JSON file."""

    def __init__(self, store_path: str = DEFAULT_STORE_PATH, embedding_generator: Optional[EmbeddingGenerator] = None):
        """
        Initialize the store and load any existing snapshot.

        Args:
            store_path: JSON file holding {documents, lastUpdated}.
            embedding_generator: Vectorizer; defaults to the hash embedder.
        """
        self.store_path = Path(store_path)
        self.embedding_generator = embedding_generator or EmbeddingGenerator()
        self.documents: List[IndexEntry] = []
        self._ids = set()
        self._lock = threading.RLock()
        self.load()

    def load(self) -> None:
        """Load entries from disk if the file exists. Malformed files leave the index empty."""
        with self._lock:
            if not self.store_path.exists():
                return
            try:
                with open(self.store_path, 'r', encoding='utf-8') as f:
                    stored = json.load(f)
                documents = [IndexEntry.model_validate(d) for d in stored.get('documents') or []]
            except (OSError, ValueError, AttributeError, ValidationError) as e:
                logger.error("Error loading vector store from %s: %s", self.store_path, e)
                self.documents = []
                self._ids = set()
                return
            self.documents = documents
            self._ids = {d.id for d in documents}
            logger.info("Loaded %d documents from vector store", len(self.documents))

    def save(self) -> None:
        """Write the full entry list atomically."""
        with self._lock:
            data = {
                'documents': [d.to_record() for d in self.documents],
                'lastUpdated': datetime.now(timezone.utc).isoformat(),
            }
            directory = self.store_path.parent
            try:
                directory.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(prefix='.vector-store-', suffix='.tmp', dir=str(directory))
                try:
                    with os.fdopen(fd, 'w', encoding='utf-8') as f:
                        f.write(json.dumps(data))
                    os.replace(tmp_path, self.store_path)
                except BaseException:
                    if os.path.exists(tmp_path):
                        os.unlink(tmp_path)
                    raise
            except OSError as e:
                raise IndexPersistenceError(f"Error saving vector store to {self.store_path}: {e}") from e

    def _new_id(self, platform: str) -> str:
        while True:
            doc_id = f"{platform}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:7]}"
            if doc_id not in self._ids:
                return doc_id

    def add_document(self, text: str, metadata: Dict[str, Any]) -> str:
        """
        Embed `text`, append it and persist the whole index.

        Args:
            text: The text to vectorize.
            metadata: title, content, platform and optional endpoint/method.

        Returns:
            The new entry id.
        """
        embedding = self.embedding_generator.embed_single(text)
        meta = EntryMetadata.model_validate(metadata)
        with self._lock:
            doc_id = self._new_id(meta.platform)
            entry = IndexEntry(id=doc_id, text=text, embedding=embedding, metadata=meta)
            self.documents.append(entry)
            self._ids.add(doc_id)
            try:
                self.save()
            except IndexPersistenceError:
                self.documents.pop()
                self._ids.discard(doc_id)
                raise
        return doc_id

    def add_documents(self, sections: List[DocumentationSection], platform: str) -> List[str]:
        """Add sections in order. The first failure aborts the rest of the batch."""
        platform = platform.lower()
        logger.info("Adding %d documents for %s to vector store", len(sections), platform)
        ids = []
        for section in sections:
            ids.append(self.add_document(section.searchable_text(), {
                'title': section.title,
                'endpoint': section.endpoint,
                'method': section.method,
                'platform': platform,
                'content': section.content,
            }))
        return ids

    def search(self, query: str, limit: int = 5, platform_filter: Optional[str] = None) -> List[IndexEntry]:
        """
        Rank entries by cosine similarity to the query.

        Returns:
            At most `limit` entries, best first; ties keep insertion order.
            Empty on an empty index or on any internal error.
        """
        with self._lock:
            candidates = list(self.documents)
        if not candidates:
            logger.warning("Vector store is empty. Please initialize it first.")
            return []

        try:
            query_embedding = self.embedding_generator.embed_single(query)
            if platform_filter:
                wanted = platform_filter.lower()
                candidates = [d for d in candidates if d.platform.lower() == wanted]
            scored = [
                (self.embedding_generator.similarity(query_embedding, d.embedding), d)
                for d in candidates
            ]
            scored.sort(key=lambda item: item[0], reverse=True)
            return [d for _, d in scored[:max(limit, 0)]]
        except Exception:
            logger.exception("Error searching vector store")
            return []

    def clear(self) -> None:
        """Drop every entry and persist the empty state. On a failed write the entries are kept."""
        with self._lock:
            # ids stay reserved for the life of the process
            previous = self.documents
            self.documents = []
            try:
                self.save()
            except IndexPersistenceError:
                self.documents = previous
                raise
        logger.info("Vector store cleared")

    def count(self) -> int:
        return len(self.documents)

    def is_initialized(self) -> bool:
        return self.count() > 0


# Example usage (for testing)
if __name__ == "__main__":
    store = VectorStore(store_path='example-store.json')
    store.add_documents([
        DocumentationSection(title='Search for tracks', content='GET /v1/search - Search the catalog.',
                             endpoint='/v1/search', method='GET', platform='spotify'),
    ], 'spotify')
    print(f"Indexed {store.count()} documents; top hit: {store.search('track search', limit=1)[0].metadata.title}")
