"""Shared pytest fixtures and markers for repair_api tests."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from app.cache.rate_limiter import RateLimiter
from app.diagnosis.sanitization import SanitizedInput


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "integration: marks tests that require external services (PostgreSQL, OpenAI, search APIs)",
    )


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeStore:
    """In-memory stand-in for ``DiagnosticStore``."""

    def __init__(
        self,
        candidates: Any = None,
        search_error: Optional[Exception] = None,
        insert_error: Optional[Exception] = None,
    ) -> None:
        self.candidates = [] if candidates is None else candidates
        self.search_error = search_error
        self.insert_error = insert_error
        self.searches: List[Dict[str, Any]] = []
        self.inserted: List[Dict[str, Any]] = []

    async def search_similar(self, appliance, brand, problem, error_code, threshold):
        self.searches.append(
            {
                "appliance": appliance,
                "brand": brand,
                "problem": problem,
                "error_code": error_code,
                "threshold": threshold,
            }
        )
        if self.search_error is not None:
            raise self.search_error
        return self.candidates

    async def insert(self, record: Dict[str, Any]) -> None:
        if self.insert_error is not None:
            raise self.insert_error
        self.inserted.append(record)


def make_cached_row(**overrides) -> Dict[str, Any]:
    """A ``search_similar_diagnostics`` row with realistic values."""
    row: Dict[str, Any] = {
        "similarity_score": 0.95,
        "occurrence_count": 3,
        "appliance_type": "Washing Machine",
        "brand": "Bosch",
        "problem_description": "Machine shows E13 and will not drain",
        "error_code": "E13",
        "error_code_meaning": "E13 indicates a drainage fault on Bosch machines.",
        "possible_causes": ["Blocked drain pump filter", "Kinked drain hose"],
        "diy_solutions": ["Clean the drain pump filter behind the kickplate"],
        "professional_services": ["Replace the drain pump if it is seized"],
        "skills_required": ["Basic hand tool use"],
        "safety_warnings": ["Unplug the machine before opening the filter"],
        "priority_level": "medium",
        "estimated_cost": "£0-£30",
        "difficulty_level": "easy",
        "recommended_action": "diy",
        "estimated_time": "30-60 minutes",
        "service_reason": "A blocked filter is a simple job most owners can do safely.",
    }
    row.update(overrides)
    return row


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def limiter(clock) -> RateLimiter:
    return RateLimiter(window_seconds=3600, max_requests=5, name="test", clock=clock)


@pytest.fixture()
def sanitized_request() -> SanitizedInput:
    return SanitizedInput(
        appliance="Washing Machine",
        brand="Bosch",
        problem="Machine shows E13 and will not drain",
        email="jane@example.com",
    )


@pytest.fixture()
def cached_row():
    """Factory for similarity-search rows."""
    return make_cached_row


@pytest.fixture()
def fake_store_factory():
    return FakeStore
