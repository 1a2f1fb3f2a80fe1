"""vicidash models - re-exports all models and Base.metadata."""

from .base import Base, IntPKMixin, TimestampMixin
from .agent import Agent, AgentCampaign
from .campaign import Campaign

__all__ = [
    "Base",
    "IntPKMixin",
    "TimestampMixin",
    "Agent",
    "AgentCampaign",
    "Campaign",
]
