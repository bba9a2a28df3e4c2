"""Category lookups for search suggestions."""

from typing import List, Pattern, Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shopsearch.core.exceptions import PersistenceUnavailableError
from shopsearch.models.category import Category

logger = structlog.get_logger(__name__)


def _matches(name: str, patterns: Sequence[Pattern[str]]) -> bool:
    return any(p.search(name) for p in patterns)


class CategoryService:
    """Read-only access to the category tree for suggestion building."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = logger.bind(service="category_service")

    async def _execute(self, query, operation: str):
        try:
            return await self.db.execute(query)
        except SQLAlchemyError as e:
            self.logger.error("category_query_failed", operation=operation, error=str(e))
            raise PersistenceUnavailableError(operation, str(e)) from e

    async def find_matching(
        self,
        patterns: Sequence[Pattern[str]],
        limit: int = 3,
    ) -> List[Category]:
        """Active top-level categories whose name or a subcategory name matches.

        Args:
            patterns: Compiled term patterns
            limit: Maximum categories to return

        Returns:
            Categories with ``children`` loaded, in display order
        """
        if not patterns:
            return []

        result = await self._execute(
            select(Category)
            .options(selectinload(Category.children))
            .where(Category.is_active == True, Category.parent_id.is_(None))
            .order_by(Category.sort_order, Category.name),
            "category lookup",
        )
        matches = [
            category
            for category in result.scalars().all()
            if _matches(category.name, patterns)
            or any(_matches(child.name, patterns) for child in category.children)
        ]
        return matches[:limit]

    @staticmethod
    def matching_subcategories(
        category: Category,
        patterns: Sequence[Pattern[str]],
        limit: int = 2,
    ) -> List[Category]:
        """Active children of a category whose name matches."""
        children = sorted(category.children, key=lambda c: (c.sort_order, c.name))
        return [
            child for child in children
            if child.is_active and _matches(child.name, patterns)
        ][:limit]

    async def names_matching(self, patterns: Sequence[Pattern[str]], limit: int = 2) -> List[str]:
        """Distinct names of active categories (any depth) matching the patterns."""
        if not patterns:
            return []

        result = await self._execute(
            select(Category.name)
            .where(Category.is_active == True)
            .distinct()
            .order_by(Category.name),
            "category name lookup",
        )
        return [name for name in result.scalars().all() if _matches(name, patterns)][:limit]

    async def largest(self, limit: int = 3) -> List[str]:
        """Names of the active categories holding the most products."""
        result = await self._execute(
            select(Category.name)
            .where(Category.is_active == True)
            .order_by(Category.product_count.desc(), Category.name)
            .limit(limit),
            "category ranking",
        )
        return list(result.scalars().all())
