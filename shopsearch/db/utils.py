"""Database utility functions shared by the services."""

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(db: AsyncSession, model):
    """Return an INSERT construct supporting ON CONFLICT for the session's dialect.

    Args:
        db: Async database session
        model: Mapped class or table to insert into

    Raises:
        NotImplementedError: If the bound dialect has no ON CONFLICT support here
    """
    dialect = db.get_bind().dialect.name
    try:
        insert = _UPSERT_DIALECTS[dialect]
    except KeyError:
        raise NotImplementedError(f"Upserts are not supported on '{dialect}'") from None
    return insert(model)
