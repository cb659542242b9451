"""Web search providers used for error-code enrichment.

Two interchangeable Google-results APIs are supported.  Both are queried for
UK results and normalised into :class:`SearchResponse`, so the enrichment
scorer never sees provider-specific JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

import httpx
import structlog

from app.config import Settings

logger = structlog.get_logger(__name__)

SERPAPI_URL = "https://serpapi.com/search.json"
SERPER_URL = "https://google.serper.dev/search"
RESULTS_PER_QUERY = 10


@dataclass(frozen=True)
class OrganicResult:
    title: str
    url: str
    snippet: str


@dataclass(frozen=True)
class RelatedQuestion:
    question: str
    snippet: str


@dataclass(frozen=True)
class SearchResponse:
    """Provider-neutral view of one results page."""

    answer_box: Optional[str] = None
    featured_snippet: Optional[str] = None
    organic_results: List[OrganicResult] = field(default_factory=list)
    related_questions: List[RelatedQuestion] = field(default_factory=list)


class SearchProvider(Protocol):
    name: str

    async def search(self, query: str) -> SearchResponse:
        ...


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _organic(items: Any) -> List[OrganicResult]:
    results = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        results.append(
            OrganicResult(
                title=_text(item.get("title")),
                url=_text(item.get("link")),
                snippet=_text(item.get("snippet")),
            )
        )
    return results


def _questions(items: Any) -> List[RelatedQuestion]:
    questions = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        question = _text(item.get("question"))
        if question:
            questions.append(
                RelatedQuestion(question=question, snippet=_text(item.get("snippet")))
            )
    return questions


class SerpApiProvider:
    """serpapi.com Google engine (primary)."""

    name = "serpapi"

    def __init__(self, api_key: str, client: httpx.AsyncClient) -> None:
        self._api_key = api_key
        self._client = client

    async def search(self, query: str) -> SearchResponse:
        response = await self._client.get(
            SERPAPI_URL,
            params={
                "engine": "google",
                "q": query,
                "api_key": self._api_key,
                "gl": "uk",
                "hl": "en",
                "google_domain": "google.co.uk",
                "num": RESULTS_PER_QUERY,
            },
        )
        response.raise_for_status()
        return self.parse(response.json())

    @staticmethod
    def parse(data: Dict[str, Any]) -> SearchResponse:
        if not isinstance(data, dict):
            return SearchResponse()
        answer_box = data.get("answer_box") or {}
        if not isinstance(answer_box, dict):
            answer_box = {}
        return SearchResponse(
            answer_box=_text(answer_box.get("answer")) or None,
            featured_snippet=_text(answer_box.get("snippet")) or None,
            organic_results=_organic(data.get("organic_results")),
            related_questions=_questions(data.get("related_questions")),
        )


class SerperProvider:
    """google.serper.dev (secondary)."""

    name = "serper"

    def __init__(self, api_key: str, client: httpx.AsyncClient) -> None:
        self._api_key = api_key
        self._client = client

    async def search(self, query: str) -> SearchResponse:
        response = await self._client.post(
            SERPER_URL,
            json={"q": query, "gl": "gb", "hl": "en", "num": RESULTS_PER_QUERY},
            headers={"X-API-KEY": self._api_key, "Content-Type": "application/json"},
        )
        response.raise_for_status()
        return self.parse(response.json())

    @staticmethod
    def parse(data: Dict[str, Any]) -> SearchResponse:
        if not isinstance(data, dict):
            return SearchResponse()
        answer_box = data.get("answerBox") or {}
        if not isinstance(answer_box, dict):
            answer_box = {}
        return SearchResponse(
            answer_box=_text(answer_box.get("answer")) or None,
            featured_snippet=_text(answer_box.get("snippet")) or None,
            organic_results=_organic(data.get("organic")),
            related_questions=_questions(data.get("peopleAlsoAsk")),
        )


ProviderFactory = Callable[[str, httpx.AsyncClient], SearchProvider]

# Priority order: the first configured credential selects the provider.
PROVIDER_PRIORITY: Sequence[Tuple[str, ProviderFactory]] = (
    ("serpapi_api_key", SerpApiProvider),
    ("serper_api_key", SerperProvider),
)


def select_search_provider(
    settings: Settings, client: httpx.AsyncClient
) -> Optional[SearchProvider]:
    """Resolve the search provider once, from configured credentials."""
    for setting_name, factory in PROVIDER_PRIORITY:
        api_key = getattr(settings, setting_name, None)
        if api_key:
            provider = factory(api_key, client)
            logger.info("search_provider_selected", provider=provider.name)
            return provider
    logger.info("search_provider_disabled")
    return None
