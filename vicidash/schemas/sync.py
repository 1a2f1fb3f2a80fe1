"""Sync schemas: agent campaign snapshots and pass/persistence results."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CampaignRef(BaseModel):
    id: str
    name: str


class AgentCampaignSnapshot(BaseModel):
    agent_user: str
    agent_name: str | None = None
    user_group: str | None = None
    campaigns: list[CampaignRef] = []
    count_campaigns: int = 0
    last_synced: datetime = Field(default_factory=_utcnow)
    error: str | None = None

    @model_validator(mode="after")
    def _dedupe_campaigns(self) -> "AgentCampaignSnapshot":
        seen: set[str] = set()
        unique: list[CampaignRef] = []
        for campaign in self.campaigns:
            if campaign.id in seen:
                continue
            seen.add(campaign.id)
            unique.append(campaign)
        self.campaigns = unique
        self.count_campaigns = len(unique)
        return self

    def to_json(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        if data.get("error") is None:
            data.pop("error", None)
        return data


class ReconcileResult(BaseModel):
    agents_processed: int = 0
    total_agents: int = 0
    failed: int = 0
    results: dict[str, AgentCampaignSnapshot] = {}

    @property
    def total_campaigns(self) -> int:
        return sum(s.count_campaigns for s in self.results.values())


class DbSyncStats(BaseModel):
    agents_created: int = 0
    agents_updated: int = 0
    campaigns_created: int = 0
    campaigns_updated: int = 0
    relations_created: int = 0
    relations_removed: int = 0
    errors: list[dict[str, str]] = []


class DbSyncResult(BaseModel):
    success: bool
    stats: DbSyncStats | None = None
    error: str | None = None


class SyncPassResult(BaseModel):
    success: bool
    skipped: bool = False
    error: str | None = None
    agents_processed: int = 0
    total_agents: int = 0
    total_campaigns: int = 0
    db_sync: DbSyncResult | None = None
    results: dict[str, AgentCampaignSnapshot] = {}

    def to_data(self) -> dict[str, Any]:
        return {
            "agents_processed": self.agents_processed,
            "total_agents": self.total_agents,
            "total_campaigns": self.total_campaigns,
            "db_sync": self.db_sync.model_dump(mode="json") if self.db_sync else None,
            "results": {k: v.to_json() for k, v in self.results.items()},
        }
