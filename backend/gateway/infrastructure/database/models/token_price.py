"""SQLAlchemy ORM model for per-model token prices."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from gateway.infrastructure.database.base import Base


class TokenPriceModel(Base):
    """ORM model — maps to the 'token_prices' table (one row per model)."""

    __tablename__ = "token_prices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    model: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    provider: Mapped[str] = mapped_column(String(100), nullable=False)
    price_per_million_input: Mapped[float] = mapped_column(Float, nullable=False)
    price_per_million_output: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<TokenPriceModel(model='{self.model}', in={self.price_per_million_input}, "
            f"out={self.price_per_million_output})>"
        )
