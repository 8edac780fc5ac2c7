"""Dialect-aware ``INSERT ... ON CONFLICT DO NOTHING``."""

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from gateway.infrastructure.database.base import Base


async def insert_if_absent(
    session: AsyncSession,
    model: type[Base],
    rows: list[dict[str, Any]],
    *,
    conflict_columns: list[str],
) -> int:
    """Insert ``rows`` skipping any that violate the unique ``conflict_columns``.

    The uniqueness constraint decides, not a prior SELECT, so concurrent
    callers can neither double-insert nor overwrite an existing row.

    Returns:
        Number of rows actually inserted.
    """
    if not rows:
        return 0
    dialect = session.bind.dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(model)
    elif dialect == "sqlite":
        stmt = sqlite.insert(model)
    else:
        raise NotImplementedError(f"Conditional insert not supported for dialect '{dialect}'")

    stmt = stmt.values(rows).on_conflict_do_nothing(index_elements=conflict_columns)
    result = await session.execute(stmt)
    return max(result.rowcount or 0, 0)
