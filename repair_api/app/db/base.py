"""Declarative base for the diagnostics models."""

from typing import Any

from sqlalchemy import MetaData
from sqlalchemy.orm import as_declarative

# Same index names alembic's op.f() writes in the migrations.
NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
}


@as_declarative(metadata=MetaData(naming_convention=NAMING_CONVENTION))
class Base:
    """Base class for all database models; each sets ``__tablename__``."""

    id: Any
    __name__: str
