"""Analyzer Module for the API docs RAG app

This module classifies incoming questions with rules, before any retrieval:
- Gate: is this an API question at all?
- Platform detection: does it name one of the supported APIs?
- Preferred section: which returned section best matches the question's intent verb?

The gate checks run in a fixed order and the order matters:
1. Any API keyword accepts, unless a financial/stock pattern also matches.
2. Otherwise any rejection pattern (greetings, small talk, weather, companies) rejects.
3. Otherwise a technical phrasing pattern ("how do I fetch ...") accepts.
4. Everything else is rejected.

Usage:
  from apidoc_rag.analyzer.analyzer import QueryAnalyzer
  analyzer = QueryAnalyzer()
  analyzer.is_api_related("How do I search for tracks using the Spotify API?")  # True
  analyzer.detect_platform("List my GitHub repos")  # Platform.GITHUB
"""

import re
from typing import List, Optional, Pattern, Sequence, Tuple

from apidoc_rag.ingestion.ingestion import DocumentationSection, Platform

GUIDANCE_MESSAGE = (
    "I'm specialized in helping developers with API-related questions. I can assist you with:\n\n"
    "• API endpoints and documentation\n"
    "• Code examples for integrating APIs\n"
    "• Authentication and API keys\n"
    "• Making API requests (GitHub, YouTube, Spotify, Stripe, OpenAI, OpenWeatherMap, Notion, "
    "Reddit, Twitter/X, Google Maps)\n\n"
    "Please ask me a question about using one of these APIs!"
)

API_KEYWORDS = [
    'api', 'endpoint', 'request', 'response', 'http', 'rest', 'graphql',
    'authentication', 'token', 'key', 'github', 'youtube', 'spotify',
    'stripe', 'openai', 'notion', 'reddit', 'twitter', 'weather api',
    'maps api', 'google maps', 'openweathermap', 'fetch', 'curl', 'axios',
    'integrate', 'integration', 'webhook', 'documentation', 'sdk',
    'get data from', 'call api', 'use api', 'connect to', 'access',
]

_FINANCIAL = r"stock.*price|stock.*performing|stock market|share price|trading|financial|invest"


def _compile(patterns: Sequence[str]) -> List[Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


CONFLICTING_PATTERNS = _compile([_FINANCIAL])

NON_API_PATTERNS = _compile([
    # greetings and personal questions
    r"^(hi|hello|hey|how are you|what's up|how's it going)$",
    r"^(tell me about yourself|what do you do|who are you|what are you)$",
    r"^(how old are you|where are you from|what's your name)$",
    # stock/financial
    r"^(how is|how's|what is|tell me about).*(stock|price|performing|market|trading|financial|invest)",
    _FINANCIAL,
    # small talk
    r"^(thanks|thank you|bye|goodbye|see you|thanks for|appreciate)$",
    # weather, unless the API is mentioned
    r"^(what's the weather|how's the weather|weather today|weather forecast)(?!.*api)",
    r"^(what|how).*weather(?!.*api)",
    # companies, unless their API is mentioned
    r"^(how is|how's|tell me about|what is) (google|microsoft|apple|meta|amazon|tesla)(?!.*api)",
    # general knowledge explicitly without API context
    r"^(what is|what are|who is|who are|when did|where is|why is).*(but|not|except|without).*api",
])

TECHNICAL_PATTERNS = _compile([
    r"how (to|do|can).*(fetch|get|post|put|delete|call|use|connect|integrate|access)",
    r"(fetch|get|post|put|delete|call).*(data|information|result|response)",
    r"(connect|integrate|use|access).*(service|platform)",
    r"(example|code|snippet|implementation|tutorial).*(for|of|using)",
])

# Iteration order is the tie-break when several platforms match.
PLATFORM_PATTERNS: List[Tuple[Platform, List[Pattern]]] = [
    (Platform.GITHUB, _compile([r"github", r"git hub", r"repository|repo"])),
    (Platform.YOUTUBE, _compile([r"youtube", r"yt\b", r"video.*api"])),
    (Platform.SPOTIFY, _compile([r"spotify"])),
    (Platform.TWITTER, _compile([r"twitter", r"tweet", r"x\s+api"])),
    (Platform.GOOGLEMAPS, _compile([r"google\s*maps", r"maps\s*api", r"geocod", r"place", r"directions"])),
    (Platform.STRIPE, _compile([r"stripe", r"payment"])),
    (Platform.OPENAI, _compile([r"openai", r"gpt", r"chatgpt", r"davinci", r"whisper"])),
    (Platform.OPENWEATHERMAP, _compile([r"openweathermap", r"openweather", r"weather\s*api"])),
    (Platform.NOTION, _compile([r"notion"])),
    (Platform.REDDIT, _compile([r"reddit", r"subreddit"])),
]

INTENT_VERBS = ['search', 'get', 'fetch', 'retrieve', 'create', 'update', 'delete']


class QueryAnalyzer:
    """Rules-based classification of developer questions."""

    def __init__(self, platform_patterns: Optional[List[Tuple[Platform, List[Pattern]]]] = None):
        self.platform_patterns = platform_patterns or PLATFORM_PATTERNS

    def is_api_related(self, message: str) -> bool:
        msg = message.lower().strip()

        if any(keyword in msg for keyword in API_KEYWORDS):
            return not any(p.search(msg) for p in CONFLICTING_PATTERNS)

        if any(p.search(msg) for p in NON_API_PATTERNS):
            return False

        return any(p.search(msg) for p in TECHNICAL_PATTERNS)

    def detect_platform(self, message: str) -> Optional[Platform]:
        """First platform whose pattern list matches, or None."""
        msg = message.lower()
        for platform, patterns in self.platform_patterns:
            if any(p.search(msg) for p in patterns):
                return platform
        return None

    def find_intent_verb(self, message: str) -> Optional[str]:
        msg = message.lower()
        return next((verb for verb in INTENT_VERBS if verb in msg), None)

    def pick_preferred_section(self, message: str,
                               sections: List[DocumentationSection]) -> Optional[DocumentationSection]:
        """
        Pick the section downstream generators should favour.

        Returns the first section whose title, endpoint or content mentions the
        question's intent verb; otherwise the first section; None if there are none.
        """
        if not sections:
            return None
        verb = self.find_intent_verb(message)
        if verb and len(sections) > 1:
            for section in sections:
                if (verb in section.title.lower()
                        or (section.endpoint and verb in section.endpoint.lower())
                        or verb in section.content.lower()):
                    return section
        return sections[0]
