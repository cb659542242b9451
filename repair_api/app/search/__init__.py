from .enrichment import Enrichment, WebSearchEnricher, score_organic_result
from .providers import (
    SearchProvider,
    SearchResponse,
    SerpApiProvider,
    SerperProvider,
    select_search_provider,
)

__all__ = [
    "Enrichment",
    "WebSearchEnricher",
    "score_organic_result",
    "SearchProvider",
    "SearchResponse",
    "SerpApiProvider",
    "SerperProvider",
    "select_search_provider",
]
