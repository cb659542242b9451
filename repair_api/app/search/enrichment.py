"""Error-code enrichment from web search results.

Snippets from several query variants are scored for relevance to the exact
appliance, brand and code, and the best are condensed into a context blob
for the expert prompt.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import structlog

from app.diagnosis.schemas import MAX_SOURCE_URLS
from app.search.providers import SearchProvider, SearchResponse

logger = structlog.get_logger(__name__)

QUERY_TEMPLATES = (
    '"{brand} {appliance} {code}" error code',
    "{brand} {appliance} {code} error code meaning",
    "{brand} {appliance} {code} troubleshooting",
)

ANSWER_BOX_SCORE = 10.0
FEATURED_SNIPPET_SCORE = 9.0
RELATED_QUESTION_SCORE = 5.0
COMBINED_BONUS = 2.0

MIN_SNIPPET_SCORE = 2.0
MIN_SNIPPET_LENGTH = 20
MAX_CONTEXT_SNIPPETS = 8
MAX_COLLECTED_URLS = 15

# Fixed list: a new appliance category needs adding here to be penalised.
OTHER_APPLIANCES = (
    "washing machine",
    "washer dryer",
    "tumble dryer",
    "dishwasher",
    "fridge freezer",
    "fridge",
    "freezer",
    "oven",
    "cooker",
    "microwave",
    "hob",
    "range cooker",
)


@dataclass(frozen=True)
class ScoredSnippet:
    score: float
    text: str


@dataclass(frozen=True)
class Enrichment:
    """Condensed search context and the URLs it came from."""

    context: str = ""
    source_urls: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.context

    def top_sources(self) -> List[str]:
        return list(self.source_urls[:MAX_SOURCE_URLS])


def _mentions_other_appliance(text: str, appliance: str) -> bool:
    for other in OTHER_APPLIANCES:
        if other in appliance or appliance in other:
            continue
        if re.search(rf"\b{re.escape(other)}\b", text):
            return True
    return False


def score_organic_result(
    title: str, snippet: str, appliance: str, brand: str, error_code: str
) -> float:
    """Relevance score for one organic result."""
    title_l = title.lower()
    snippet_l = snippet.lower()
    combined = f"{title_l} {snippet_l}"
    appliance_l = appliance.lower().strip()
    brand_l = brand.lower().strip()
    code_l = error_code.lower()

    score = 0.0
    if appliance_l and _mentions_other_appliance(combined, appliance_l):
        score -= 5
    if appliance_l and appliance_l in combined:
        score += 2
    if code_l in snippet_l:
        score += 3
    if code_l in title_l:
        score += 2
    if brand_l and brand_l in snippet_l:
        score += 2
    if brand_l and brand_l in title_l:
        score += 1
    if "meaning" in snippet_l or "indicates" in snippet_l:
        score += 1
    if "fix" in snippet_l or "solution" in snippet_l:
        score += 1
    if "error" in snippet_l:
        score += 0.5
    return score


def collect_snippets(
    response: SearchResponse, appliance: str, brand: str, error_code: str
) -> Tuple[List[ScoredSnippet], List[str]]:
    """Score everything useful on one results page."""
    snippets: List[ScoredSnippet] = []
    urls: List[str] = []
    code_l = error_code.lower()

    if response.answer_box:
        snippets.append(ScoredSnippet(ANSWER_BOX_SCORE, response.answer_box))
    if response.featured_snippet:
        snippets.append(ScoredSnippet(FEATURED_SNIPPET_SCORE, response.featured_snippet))

    for item in response.related_questions:
        if code_l in item.question.lower() and item.snippet:
            snippets.append(
                ScoredSnippet(RELATED_QUESTION_SCORE, f"{item.question} {item.snippet}")
            )

    for result in response.organic_results:
        if result.url:
            urls.append(result.url)
        if not result.snippet:
            continue
        score = score_organic_result(
            result.title, result.snippet, appliance, brand, error_code
        )
        if score < MIN_SNIPPET_SCORE or len(result.snippet) <= MIN_SNIPPET_LENGTH:
            continue
        snippets.append(ScoredSnippet(score, result.snippet))

        combined = f"{result.title}: {result.snippet}"
        if code_l in combined.lower() and "error" in combined.lower():
            snippets.append(ScoredSnippet(score + COMBINED_BONUS, combined))

    return snippets, urls


class WebSearchEnricher:
    """Runs the query variants and condenses what comes back."""

    def __init__(self, provider: SearchProvider) -> None:
        self.provider = provider

    def build_queries(self, appliance: str, brand: str, error_code: str) -> List[str]:
        return [
            template.format(brand=brand, appliance=appliance, code=error_code)
            for template in QUERY_TEMPLATES
        ]

    async def _search(self, query: str) -> Optional[SearchResponse]:
        try:
            return await self.provider.search(query)
        except Exception as e:
            logger.warning(
                "web_search_query_failed",
                provider=self.provider.name,
                query=query,
                error=str(e),
            )
            return None

    async def enrich(self, appliance: str, brand: str, error_code: str) -> Enrichment:
        queries = self.build_queries(appliance, brand, error_code)
        responses = await asyncio.gather(*(self._search(q) for q in queries))

        snippets: List[ScoredSnippet] = []
        urls: List[str] = []
        for response in responses:
            if response is None:
                continue
            page_snippets, page_urls = collect_snippets(
                response, appliance, brand, error_code
            )
            snippets.extend(page_snippets)
            for url in page_urls:
                if url not in urls and len(urls) < MAX_COLLECTED_URLS:
                    urls.append(url)

        # Stable sort keeps first-seen order among equal scores
        snippets.sort(key=lambda s: s.score, reverse=True)

        seen = set()
        top: List[str] = []
        for snippet in snippets:
            if snippet.text in seen:
                continue
            seen.add(snippet.text)
            top.append(snippet.text)
            if len(top) == MAX_CONTEXT_SNIPPETS:
                break

        logger.info(
            "web_search_enrichment_complete",
            provider=self.provider.name,
            error_code=error_code,
            queries=len(queries),
            failed=sum(1 for r in responses if r is None),
            snippets=len(snippets),
            urls=len(urls),
        )
        return Enrichment(context="\n\n".join(top), source_urls=urls)
