"""Background maintenance jobs for search analytics."""

from .scheduler import AnalyticsScheduler

__all__ = ["AnalyticsScheduler"]
