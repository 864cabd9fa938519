"""Router Module for the API docs RAG app

Decides, per question, how documentation is retrieved:
- Rejected by the gate: guidance message, no sections, index untouched.
- A platform is named: every section for that platform, straight from the corpus.
- Otherwise: top-k semantic search over the whole index.

Each call is independent; the router keeps no conversation state. Retrieval
errors never reach the caller, they degrade to an accepted result with no sections.

Usage:
  from apidoc_rag.router.router import QueryRouter
  router = QueryRouter(retriever)
  result = router.route("How do I search for tracks using the Spotify API?")
  result.platform, len(result.sections)
"""

import logging
import os
from typing import List, Optional

from pydantic import BaseModel

from apidoc_rag.analyzer.analyzer import GUIDANCE_MESSAGE, QueryAnalyzer
from apidoc_rag.ingestion.ingestion import DocumentationSection
from apidoc_rag.retrieval.retrieval import Retriever

logger = logging.getLogger(__name__)

SEARCH_LIMIT = int(os.getenv('APIDOC_SEARCH_LIMIT', '2'))


class RouteResult(BaseModel):
    accepted: bool
    guidance_message: Optional[str] = None
    platform: Optional[str] = None
    strategy: str
    sections: List[DocumentationSection] = []
    preferred_section: Optional[DocumentationSection] = None
    relevant_endpoint: Optional[str] = None


class QueryRouter:
    """Gate, platform detection and retrieval strategy selection."""

    def __init__(self, retriever: Retriever, analyzer: Optional[QueryAnalyzer] = None,
                 search_limit: int = SEARCH_LIMIT):
        self.retriever = retriever
        self.analyzer = analyzer or QueryAnalyzer()
        self.search_limit = search_limit

    def route(self, query: str) -> RouteResult:
        if not self.analyzer.is_api_related(query):
            return RouteResult(accepted=False, guidance_message=GUIDANCE_MESSAGE, strategy='rejected')

        platform = self.analyzer.detect_platform(query)
        strategy = 'platform' if platform else 'semantic'
        try:
            self.retriever.ensure_initialized()
            if platform:
                logger.info("Detected platform: %s, fetching all endpoints...", platform.value)
                sections = self.retriever.get_all_docs_for_platform(platform)
            else:
                logger.info("No specific platform detected, using semantic search...")
                sections = self.retriever.search_relevant_docs(query, self.search_limit)
        except Exception:
            logger.exception("Retrieval failed for query %r", query)
            sections = []

        preferred = self.analyzer.pick_preferred_section(query, sections)
        return RouteResult(
            accepted=True,
            platform=platform.value if platform else None,
            strategy=strategy,
            sections=sections,
            preferred_section=preferred,
            relevant_endpoint=sections[0].endpoint if sections else None,
        )
