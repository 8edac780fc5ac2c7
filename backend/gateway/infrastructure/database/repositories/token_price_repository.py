"""Concrete repository for token prices backed by SQLAlchemy."""

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gateway.application.interfaces import TokenPriceRepository
from gateway.domain.entities import TokenPrice
from gateway.infrastructure.database.models import TokenPriceModel
from gateway.infrastructure.database.repositories.conditional_insert import insert_if_absent


class SQLAlchemyTokenPriceRepository(TokenPriceRepository):
    """Implements the TokenPriceRepository port using SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def _to_entity(model: TokenPriceModel) -> TokenPrice:
        return TokenPrice(
            id=model.id,
            model=model.model,
            provider=model.provider,
            price_per_million_input=model.price_per_million_input,
            price_per_million_output=model.price_per_million_output,
            created_at=model.created_at,
        )

    async def get_by_model(self, model: str) -> TokenPrice | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TokenPriceModel).where(TokenPriceModel.model == model)
            )
            row = result.scalar_one_or_none()
            return self._to_entity(row) if row else None

    async def create_if_not_exists(self, price: TokenPrice) -> bool:
        now = datetime.now(timezone.utc)
        async with self._session_factory() as session:
            inserted = await insert_if_absent(
                session,
                TokenPriceModel,
                [
                    {
                        "model": price.model,
                        "provider": price.provider,
                        "price_per_million_input": price.price_per_million_input,
                        "price_per_million_output": price.price_per_million_output,
                        "created_at": now,
                        "updated_at": now,
                    }
                ],
                conflict_columns=["model"],
            )
            await session.commit()
            return inserted > 0
