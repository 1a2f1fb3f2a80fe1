"""Consolidated snapshot -> relational store (agents, campaigns, links)."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.agent import Agent, AgentCampaign
from ..models.campaign import Campaign
from ..schemas.sync import AgentCampaignSnapshot, DbSyncResult, DbSyncStats

logger = logging.getLogger(__name__)


def _as_snapshot(agent_user: str, data: AgentCampaignSnapshot | Mapping[str, Any]) -> AgentCampaignSnapshot:
    if isinstance(data, AgentCampaignSnapshot):
        return data
    payload = dict(data)
    payload.setdefault("agent_user", agent_user)
    return AgentCampaignSnapshot.model_validate(payload)


async def _upsert_agent(db: AsyncSession, snapshot: AgentCampaignSnapshot, stats: DbSyncStats) -> Agent:
    stmt = select(Agent).where(Agent.user == snapshot.agent_user)
    agent = (await db.execute(stmt)).scalar_one_or_none()
    if agent is None:
        agent = Agent(
            user=snapshot.agent_user,
            full_name=snapshot.agent_name,
            user_group=snapshot.user_group,
        )
        db.add(agent)
        stats.agents_created += 1
    else:
        agent.full_name = snapshot.agent_name
        agent.user_group = snapshot.user_group
        stats.agents_updated += 1
    await db.flush()
    return agent


async def _upsert_campaign(db: AsyncSession, code: str, name: str | None, stats: DbSyncStats) -> Campaign:
    stmt = select(Campaign).where(Campaign.campaign_id == code)
    campaign = (await db.execute(stmt)).scalar_one_or_none()
    if campaign is None:
        campaign = Campaign(campaign_id=code, campaign_name=name or code)
        db.add(campaign)
        stats.campaigns_created += 1
    else:
        # new name -> stored name -> code
        campaign.campaign_name = name or campaign.campaign_name or code
        stats.campaigns_updated += 1
    await db.flush()
    return campaign


async def _sync_relations(
    db: AsyncSession,
    agent: Agent,
    campaigns: dict[str, Campaign],
    stats: DbSyncStats,
) -> None:
    """Make the agent's links equal to ``campaigns`` (add missing, drop stale)."""
    stmt = (
        select(AgentCampaign, Campaign.campaign_id)
        .join(Campaign, AgentCampaign.campaign_id == Campaign.id)
        .where(AgentCampaign.agent_id == agent.id)
    )
    existing = {code: link for link, code in (await db.execute(stmt)).all()}

    for code, campaign in campaigns.items():
        if code not in existing:
            db.add(AgentCampaign(agent_id=agent.id, campaign_id=campaign.id))
            stats.relations_created += 1

    for code, link in existing.items():
        if code not in campaigns:
            await db.delete(link)
            stats.relations_removed += 1

    await db.flush()


_COUNTERS = (
    "agents_created",
    "agents_updated",
    "campaigns_created",
    "campaigns_updated",
    "relations_created",
    "relations_removed",
)


def _merge_counts(total: DbSyncStats, part: DbSyncStats) -> None:
    for name in _COUNTERS:
        setattr(total, name, getattr(total, name) + getattr(part, name))


async def sync_agent_to_db(db: AsyncSession, snapshot: AgentCampaignSnapshot, stats: DbSyncStats) -> None:
    agent = await _upsert_agent(db, snapshot, stats)
    if snapshot.error:
        # campaigns were never fetched; keep the stored links
        logger.warning("Keeping stored campaigns for %s: %s", snapshot.agent_user, snapshot.error)
        return

    campaigns: dict[str, Campaign] = {}
    for ref in snapshot.campaigns:
        code = ref.id.strip()
        if not code or code in campaigns:
            continue
        campaigns[code] = await _upsert_campaign(db, code, ref.name, stats)

    await _sync_relations(db, agent, campaigns, stats)


async def sync_agents_campaigns_to_db(
    db: AsyncSession,
    consolidated: Mapping[str, AgentCampaignSnapshot | Mapping[str, Any]],
) -> DbSyncResult:
    """Persist a consolidated snapshot. Each agent is committed on its own.

    A failure for one agent is rolled back and recorded in ``stats.errors``;
    only an unexpected failure outside the per-agent loop fails the sync.
    """
    stats = DbSyncStats()
    try:
        for agent_user, data in consolidated.items():
            agent_stats = DbSyncStats()
            try:
                snapshot = _as_snapshot(agent_user, data)
                await sync_agent_to_db(db, snapshot, agent_stats)
                await db.commit()
                _merge_counts(stats, agent_stats)
            except Exception as e:
                await db.rollback()
                logger.exception("Error syncing agent %s to database", agent_user)
                stats.errors.append({"agent": str(agent_user), "error": str(e)})
    except Exception as e:
        logger.exception("Database sync failed")
        return DbSyncResult(success=False, stats=stats, error=str(e))

    logger.info(
        "Database sync: agents %d created / %d updated, campaigns %d created / %d updated, "
        "relations %d created / %d removed, %d errors",
        stats.agents_created,
        stats.agents_updated,
        stats.campaigns_created,
        stats.campaigns_updated,
        stats.relations_created,
        stats.relations_removed,
        len(stats.errors),
    )
    return DbSyncResult(success=True, stats=stats)
