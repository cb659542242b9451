"""Async facade over the synchronous SQLAlchemy CRUD layer.

The pipeline runs on the event loop; each call here opens its own session
and runs the blocking work in a worker thread.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from app import crud
from app.db.session import SessionLocal, session_scope


class DiagnosticStore:
    """Similarity search and record insertion for diagnoses."""

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None) -> None:
        self._session_factory = session_factory or SessionLocal

    async def search_similar(
        self,
        appliance: str,
        brand: str,
        problem: str,
        error_code: Optional[str],
        threshold: float,
    ) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(
            self._search_similar_sync, appliance, brand, problem, error_code, threshold
        )

    async def insert(self, record: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._insert_sync, record)

    def _search_similar_sync(
        self,
        appliance: str,
        brand: str,
        problem: str,
        error_code: Optional[str],
        threshold: float,
    ) -> List[Dict[str, Any]]:
        with session_scope(self._session_factory) as db:
            return crud.search_similar_diagnostics(
                db, appliance, brand, problem, error_code, threshold
            )

    def _insert_sync(self, record: Dict[str, Any]) -> None:
        with session_scope(self._session_factory) as db:
            crud.create_diagnostic(db, record)
