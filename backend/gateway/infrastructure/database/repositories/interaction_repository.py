"""Concrete repository for interaction records backed by SQLAlchemy."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gateway.application.interfaces import InteractionRepository
from gateway.domain.entities import InteractionRecord
from gateway.infrastructure.database.models import InteractionModel

_RECORD_FIELDS = (
    "agent_id",
    "provider",
    "request",
    "processed_request",
    "response",
    "model",
    "baseline_model",
    "input_tokens",
    "output_tokens",
    "baseline_cost",
    "cost",
    "toon_tokens_before",
    "toon_tokens_after",
    "toon_cost_savings",
    "blocked_tool_calls",
    "aborted",
    "time_to_first_chunk_ms",
    "duration_ms",
    "external_agent_id",
    "user_id",
    "created_at",
)


class SQLAlchemyInteractionRepository(InteractionRepository):
    """Implements the InteractionRepository port using SQLAlchemy.

    Each call commits in its own session: a record written after the
    client disconnected must not be rolled back with the request scope.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def _to_entity(model: InteractionModel) -> InteractionRecord:
        """Map ORM model → domain entity."""
        return InteractionRecord(id=model.id, **{name: getattr(model, name) for name in _RECORD_FIELDS})

    @staticmethod
    def _to_model(entity: InteractionRecord) -> InteractionModel:
        """Map domain entity → ORM model."""
        return InteractionModel(**{name: getattr(entity, name) for name in _RECORD_FIELDS})

    async def create(self, record: InteractionRecord) -> InteractionRecord:
        async with self._session_factory() as session:
            model = self._to_model(record)
            session.add(model)
            await session.commit()
            return self._to_entity(model)

    async def get_by_id(self, record_id: int) -> InteractionRecord | None:
        async with self._session_factory() as session:
            model = await session.get(InteractionModel, record_id)
            return self._to_entity(model) if model else None

    async def get_all(
        self, *, agent_id: str | None = None, skip: int = 0, limit: int = 100
    ) -> list[InteractionRecord]:
        stmt = select(InteractionModel)
        if agent_id is not None:
            stmt = stmt.where(InteractionModel.agent_id == agent_id)
        stmt = (
            stmt.order_by(InteractionModel.created_at.desc(), InteractionModel.id.desc())
            .offset(skip)
            .limit(limit)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_entity(row) for row in result.scalars().all()]

    async def total_cost_for_agent(self, agent_id: str) -> float:
        stmt = select(func.coalesce(func.sum(InteractionModel.cost), 0.0)).where(
            InteractionModel.agent_id == agent_id
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return float(result.scalar_one())
