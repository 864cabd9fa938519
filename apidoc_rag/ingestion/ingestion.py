"""Ingestion Module for the API docs RAG app

This module supplies the documentation corpus: a fixed, ordered list of
documentation sections for each supported API platform.

Key Features:
- Closed `Platform` enumeration with the aliases users commonly type ("x", "maps", "weather").
- Sections are read from a YAML file (PyYAML) keyed by platform and cached per platform.
- `fetch_all` loads every platform concurrently; fetches are independent and side-effect free.
- Legacy keyword filter (`search_docs`) for callers that do not need the vector index.

Usage:
  from apidoc_rag.ingestion.ingestion import DocumentationCorpus, Platform
  corpus = DocumentationCorpus()
  sections = corpus.fetch_sections(Platform.SPOTIFY)
  everything = corpus.fetch_all()  # {Platform: [DocumentationSection, ...]}

Business Context: The corpus is the ground truth the assistant answers from;
it is authored once and only read at runtime.
"""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CORPUS_PATH = os.getenv('APIDOC_CORPUS_PATH', str(Path(__file__).parent / 'api_docs.yaml'))


class CorpusError(ValueError):
    """Raised when the corpus file does not have the expected shape."""


class Platform(str, Enum):
    GITHUB = 'github'
    YOUTUBE = 'youtube'
    SPOTIFY = 'spotify'
    TWITTER = 'twitter'
    GOOGLEMAPS = 'googlemaps'
    STRIPE = 'stripe'
    OPENAI = 'openai'
    OPENWEATHERMAP = 'openweathermap'
    NOTION = 'notion'
    REDDIT = 'reddit'

    @classmethod
    def from_name(cls, name: Union[str, 'Platform']) -> 'Platform':
        """Resolve a platform tag or alias (case-insensitive). Raises ValueError if unknown."""
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower()
        key = _PLATFORM_ALIASES.get(key, key)
        return cls(key)


_PLATFORM_ALIASES = {
    'x': 'twitter',
    'google maps': 'googlemaps',
    'maps': 'googlemaps',
    'openweather': 'openweathermap',
    'weather': 'openweathermap',
}


class DocumentationSection(BaseModel):
    """One authored documentation section; immutable."""
    model_config = ConfigDict(frozen=True)

    title: str
    content: str
    endpoint: Optional[str] = None
    method: Optional[str] = None
    platform: str

    def searchable_text(self) -> str:
        """Text that gets vectorized: title, content, endpoint, method (space-joined)."""
        return f"{self.title} {self.content} {self.endpoint or ''} {self.method or ''}"


class DocumentationCorpus:
    """Read-only provider of documentation sections per platform."""

    def __init__(self, corpus_path: str = DEFAULT_CORPUS_PATH, max_workers: int = 4):
        self.corpus_path = Path(corpus_path)
        self.max_workers = max_workers
        self._raw: Optional[Dict[str, Any]] = None
        self._cache: Dict[Platform, List[DocumentationSection]] = {}
        self._lock = threading.Lock()

    def _load_raw(self) -> Dict[str, Any]:
        with self._lock:
            if self._raw is None:
                if not self.corpus_path.exists():
                    raise FileNotFoundError(f"Corpus file {self.corpus_path} not found.")
                with open(self.corpus_path, 'r', encoding='utf-8') as f:
                    data = yaml.safe_load(f) or {}
                if not isinstance(data, dict):
                    raise CorpusError(f"Corpus file {self.corpus_path} must map platform names to section lists")
                self._raw = {str(k).lower(): v for k, v in data.items()}
                logger.info("Loaded documentation corpus from %s", self.corpus_path)
            return self._raw

    def fetch_sections(self, platform: Union[str, Platform]) -> List[DocumentationSection]:
        """Return every section for one platform, in authored order."""
        platform = Platform.from_name(platform)
        if platform in self._cache:
            return list(self._cache[platform])

        entries = self._load_raw().get(platform.value) or []
        if not isinstance(entries, list):
            raise CorpusError(f"Sections for {platform.value} must be a list")
        sections = []
        for entry in entries:
            if not isinstance(entry, dict):
                raise CorpusError(f"Malformed section for {platform.value}: {entry!r}")
            try:
                sections.append(DocumentationSection.model_validate({**entry, 'platform': platform.value}))
            except ValidationError as e:
                raise CorpusError(f"Malformed section for {platform.value}: {e}") from e
        self._cache[platform] = sections
        return list(sections)

    def fetch_all(self) -> Dict[Platform, List[DocumentationSection]]:
        """Fetch every platform concurrently. The first failure propagates."""
        platforms = list(Platform)
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            results = list(pool.map(self.fetch_sections, platforms))
        return dict(zip(platforms, results))

    def get_all_docs(self) -> List[DocumentationSection]:
        """All sections, flattened in platform enumeration order."""
        return [section for sections in self.fetch_all().values() for section in sections]

    def search_docs(self, query: str, platform: Optional[str] = None, limit: int = 5) -> List[DocumentationSection]:
        """Plain substring filter over title, content and endpoint."""
        docs = self.get_all_docs()
        if platform:
            wanted = platform.lower()
            docs = [d for d in docs if wanted in d.platform.lower()]

        query_lower = query.lower()
        matches = [
            d for d in docs
            if query_lower in d.title.lower()
            or query_lower in d.content.lower()
            or (d.endpoint and query_lower in d.endpoint.lower())
        ]
        return matches[:limit]


# Example usage (for testing)
if __name__ == "__main__":
    corpus = DocumentationCorpus()
    all_sections = corpus.fetch_all()
    for name, items in all_sections.items():
        print(f"{name.value}: {len(items)} sections")
