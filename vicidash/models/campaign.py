"""Campaign model."""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, IntPKMixin, TimestampMixin


class Campaign(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "campaign"

    # VICIdial campaign code, e.g. "SALES01"
    campaign_id: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    campaign_name: Mapped[str | None] = mapped_column(String(255), default=None)

    # Relationships
    agent_links: Mapped[list["AgentCampaign"]] = relationship(  # noqa: F821
        back_populates="campaign", cascade="all, delete-orphan",
    )
