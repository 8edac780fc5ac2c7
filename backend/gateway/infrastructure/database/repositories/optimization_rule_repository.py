"""Concrete repository for optimization rules backed by SQLAlchemy."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gateway.application.interfaces import OptimizationRuleRepository
from gateway.domain.entities import OptimizationRule, RuleEntityType, RuleType
from gateway.infrastructure.database.models import OptimizationRuleModel


class SQLAlchemyOptimizationRuleRepository(OptimizationRuleRepository):
    """Implements the OptimizationRuleRepository port using SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def _to_entity(model: OptimizationRuleModel) -> OptimizationRule:
        return OptimizationRule(
            id=model.id,
            entity_type=RuleEntityType(model.entity_type),
            entity_id=model.entity_id,
            rule_type=RuleType(model.rule_type),
            conditions=dict(model.conditions or {}),
            provider=model.provider,
            target_model=model.target_model,
            priority=model.priority,
            enabled=model.enabled,
            created_at=model.created_at,
        )

    @staticmethod
    def _to_model(entity: OptimizationRule) -> OptimizationRuleModel:
        return OptimizationRuleModel(
            entity_type=entity.entity_type.value,
            entity_id=entity.entity_id,
            rule_type=entity.rule_type.value,
            conditions=entity.conditions,
            provider=entity.provider,
            target_model=entity.target_model,
            priority=entity.priority,
            enabled=entity.enabled,
            created_at=entity.created_at,
        )

    async def get_enabled_for_provider(self, provider: str) -> list[OptimizationRule]:
        stmt = (
            select(OptimizationRuleModel)
            .where(OptimizationRuleModel.provider == provider)
            .where(OptimizationRuleModel.enabled.is_(True))
            .order_by(OptimizationRuleModel.priority.desc(), OptimizationRuleModel.created_at.desc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_entity(row) for row in result.scalars().all()]

    async def create(self, rule: OptimizationRule) -> OptimizationRule:
        async with self._session_factory() as session:
            model = self._to_model(rule)
            session.add(model)
            await session.commit()
            return self._to_entity(model)
