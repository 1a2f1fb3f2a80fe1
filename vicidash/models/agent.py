"""Agent and AgentCampaign models."""

from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, IntPKMixin, TimestampMixin


class Agent(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "agent"

    user: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    full_name: Mapped[str | None] = mapped_column(String(200), default=None)
    user_group: Mapped[str | None] = mapped_column(String(100), default=None)

    # Relationships
    campaign_links: Mapped[list["AgentCampaign"]] = relationship(
        back_populates="agent", cascade="all, delete-orphan",
    )


class AgentCampaign(IntPKMixin, TimestampMixin, Base):
    __tablename__ = "agent_campaign"
    __table_args__ = (
        UniqueConstraint("agent_id", "campaign_id", name="uq_agent_campaign"),
    )

    agent_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("agent.id", ondelete="CASCADE"), index=True
    )
    campaign_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("campaign.id", ondelete="CASCADE"), index=True
    )

    # Relationships
    agent: Mapped["Agent"] = relationship(back_populates="campaign_links")
    campaign: Mapped["Campaign"] = relationship(back_populates="agent_links")  # noqa: F821
