"""SQLAlchemy ORM models for agents and the tools they declare."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from gateway.infrastructure.database.base import Base


class AgentModel(Base):
    """ORM model — maps to the 'agents' table."""

    __tablename__ = "agents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Set only on default agents; unique so concurrent first requests create one row.
    default_key: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    consider_context_untrusted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    compress_tool_results: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    token_cost_limit: Mapped[float | None] = mapped_column(Float, nullable=True)
    team_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AgentModel(id={self.id}, name='{self.name}', default={self.is_default})>"


class AgentToolModel(Base):
    """ORM model — maps to the 'agent_tools' table."""

    __tablename__ = "agent_tools"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    agent_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("agents.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), default="function", nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    parameters: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("agent_id", "name", name="uq_agent_tools_agent_name"),
    )
