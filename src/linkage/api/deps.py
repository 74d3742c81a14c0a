"""Request-scoped FastAPI dependencies.

Kept apart from app.py so route modules can import them without importing
the application factory.
"""

from __future__ import annotations

from typing import Generator

from linkage.db.repo import DbSession
from linkage.db.session import get_session


def get_db_session() -> Generator[DbSession, None, None]:
    """Dependency to get database session.

    Yields:
        Database session that is automatically closed after request.
    """
    session = get_session()
    try:
        yield session
    finally:
        session.close()
