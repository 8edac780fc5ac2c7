"""SQLAlchemy ORM model for interaction records."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Float, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from gateway.infrastructure.database.base import Base


class InteractionModel(Base):
    """ORM model — maps to the 'interactions' table. Rows are never updated."""

    __tablename__ = "interactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    agent_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    provider: Mapped[str] = mapped_column(String(100), nullable=False)
    model: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    baseline_model: Mapped[str] = mapped_column(String(255), nullable=False)
    request: Mapped[dict] = mapped_column(JSON, nullable=False)
    processed_request: Mapped[dict] = mapped_column(JSON, nullable=False)
    response: Mapped[dict] = mapped_column(JSON, nullable=False)
    input_tokens: Mapped[int | None] = mapped_column(Integer, nullable=True)
    output_tokens: Mapped[int | None] = mapped_column(Integer, nullable=True)
    baseline_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    toon_tokens_before: Mapped[int | None] = mapped_column(Integer, nullable=True)
    toon_tokens_after: Mapped[int | None] = mapped_column(Integer, nullable=True)
    toon_cost_savings: Mapped[float | None] = mapped_column(Float, nullable=True)
    blocked_tool_calls: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    aborted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    time_to_first_chunk_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    external_agent_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<InteractionModel(id={self.id}, agent='{self.agent_id}', "
            f"model='{self.model}', cost={self.cost})>"
        )
