"""Concrete repositories for agents and agent tools backed by SQLAlchemy."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gateway.application.interfaces import AgentRepository, AgentToolRepository
from gateway.domain.entities import Agent, ToolDefinition
from gateway.infrastructure.database.models import AgentModel, AgentToolModel
from gateway.infrastructure.database.repositories.conditional_insert import insert_if_absent


class SQLAlchemyAgentRepository(AgentRepository):
    """Implements the AgentRepository port using SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def _to_entity(model: AgentModel) -> Agent:
        return Agent(
            id=model.id,
            name=model.name,
            is_default=model.is_default,
            consider_context_untrusted=model.consider_context_untrusted,
            compress_tool_results=model.compress_tool_results,
            token_cost_limit=model.token_cost_limit,
            team_ids=list(model.team_ids or []),
            created_at=model.created_at,
        )

    async def get_by_id(self, agent_id: str) -> Agent | None:
        async with self._session_factory() as session:
            model = await session.get(AgentModel, agent_id)
            return self._to_entity(model) if model else None

    async def get_or_create_default(self, name: str) -> Agent:
        async with self._session_factory() as session:
            await insert_if_absent(
                session,
                AgentModel,
                [
                    {
                        "id": str(uuid.uuid4()),
                        "name": name,
                        "default_key": name,
                        "is_default": True,
                        "consider_context_untrusted": False,
                        "team_ids": [],
                        "created_at": datetime.now(timezone.utc),
                    }
                ],
                conflict_columns=["default_key"],
            )
            await session.commit()
            result = await session.execute(
                select(AgentModel).where(AgentModel.default_key == name)
            )
            return self._to_entity(result.scalar_one())


class SQLAlchemyAgentToolRepository(AgentToolRepository):
    """Implements the AgentToolRepository port using SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create_many_if_not_exists(
        self, agent_id: str, tools: list[ToolDefinition]
    ) -> int:
        now = datetime.now(timezone.utc)
        rows = {
            tool.name: {
                "agent_id": agent_id,
                "name": tool.name,
                "type": tool.type,
                "description": tool.description,
                "parameters": tool.schema,
                "created_at": now,
            }
            for tool in tools
        }
        async with self._session_factory() as session:
            inserted = await insert_if_absent(
                session,
                AgentToolModel,
                list(rows.values()),
                conflict_columns=["agent_id", "name"],
            )
            await session.commit()
            return inserted
