"""FastAPI dependency injection providers."""

from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shopsearch.db.session import async_session_factory
from shopsearch.services.analytics_service import AnalyticsService, SearchTracker
from shopsearch.services.search_service import SearchService
from shopsearch.services.suggestion_service import SuggestionService


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for request-scoped usage.

    The session is automatically committed on success or rolled back on error.
    Always closed after the request completes.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_search_tracker() -> SearchTracker:
    """Analytics writer with its own sessions, safe to use after the response is sent."""
    return SearchTracker(async_session_factory)


def get_search_service(db: AsyncSession = Depends(get_db)) -> SearchService:
    return SearchService(db)


def get_suggestion_service(db: AsyncSession = Depends(get_db)) -> SuggestionService:
    return SuggestionService(db)


def get_analytics_service(db: AsyncSession = Depends(get_db)) -> AnalyticsService:
    return AnalyticsService(db)
