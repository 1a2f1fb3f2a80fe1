"""Agent service - paginated reads of agents and their campaigns."""

from __future__ import annotations

import math
from typing import Any, Iterable

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models.agent import Agent, AgentCampaign
from ..models.campaign import Campaign


def _pagination(page: int, per_page: int, total: int) -> dict[str, int]:
    return {
        "page": page,
        "perPage": per_page,
        "total": total,
        "totalPages": math.ceil(total / per_page) if per_page else 0,
    }


def _campaign_ref(campaign: Campaign) -> dict[str, str]:
    return {"id": campaign.campaign_id, "name": campaign.campaign_name or campaign.campaign_id}


async def list_agents(
    db: AsyncSession,
    *,
    search: str | None = None,
    offset: int = 0,
    limit: int = 8,
) -> tuple[list[Agent], int]:
    """List agents ordered by user, campaigns loaded. Returns (agents, total)."""
    stmt = select(Agent)

    if search:
        q = f"%{search}%"
        stmt = stmt.where(or_(Agent.user.ilike(q), Agent.full_name.ilike(q)))

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await db.execute(count_stmt)).scalar() or 0

    stmt = stmt.options(
        selectinload(Agent.campaign_links).selectinload(AgentCampaign.campaign)
    ).order_by(Agent.user).offset(offset).limit(limit)
    result = await db.execute(stmt)
    agents = list(result.scalars().all())

    return agents, total


async def agents_page(
    db: AsyncSession,
    *,
    page: int = 1,
    per_page: int = 8,
    search: str | None = None,
    active_agents: Iterable[str] = (),
) -> dict[str, Any]:
    """One page of agents, each flagged ``isActive`` when currently logged in."""
    page = max(page, 1)
    per_page = max(per_page, 1)
    active = set(active_agents)
    agents, total = await list_agents(
        db, search=search, offset=(page - 1) * per_page, limit=per_page
    )
    return {
        "data": [
            {
                "user": agent.user,
                "fullName": agent.full_name,
                "full_name": agent.full_name,
                "userGroup": agent.user_group,
                "isActive": agent.user in active,
                "campaigns": [_campaign_ref(link.campaign) for link in agent.campaign_links],
            }
            for agent in agents
        ],
        "pagination": _pagination(page, per_page, total),
    }


async def get_agent(db: AsyncSession, agent_user: str) -> Agent | None:
    stmt = select(Agent).where(Agent.user == str(agent_user))
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_agent_campaigns(
    db: AsyncSession,
    agent_id: int,
    *,
    offset: int = 0,
    limit: int = 8,
) -> tuple[list[Campaign], int]:
    """Campaigns linked to one agent, ordered by name. Returns (campaigns, total)."""
    stmt = (
        select(Campaign)
        .join(AgentCampaign, AgentCampaign.campaign_id == Campaign.id)
        .where(AgentCampaign.agent_id == agent_id)
    )

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await db.execute(count_stmt)).scalar() or 0

    stmt = stmt.order_by(Campaign.campaign_name, Campaign.campaign_id).offset(offset).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all()), total


async def agent_campaigns_page(
    db: AsyncSession,
    agent_user: str,
    *,
    page: int = 1,
    per_page: int = 8,
) -> dict[str, Any] | None:
    """Paginated campaigns for one agent, or None when the agent is unknown."""
    agent = await get_agent(db, agent_user)
    if agent is None:
        return None

    page = max(page, 1)
    per_page = max(per_page, 1)
    campaigns, total = await list_agent_campaigns(
        db, agent.id, offset=(page - 1) * per_page, limit=per_page
    )
    return {
        "agent_user": agent.user,
        "agent_name": agent.full_name,
        "user_group": agent.user_group,
        "campaigns": [_campaign_ref(c) for c in campaigns],
        "pagination": _pagination(page, per_page, total),
    }
