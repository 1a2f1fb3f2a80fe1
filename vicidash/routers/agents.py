"""Agent routes - stats, live/DB campaign views, sync trigger, name lookup."""

from __future__ import annotations

import re

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..deps import get_reconciler, get_snapshot_store, get_sync_runner, get_vici_client
from ..services import agent_svc, report_svc
from ..sync.reconciler import AgentCampaignReconciler
from ..sync.snapshots import SnapshotStore
from ..sync.sync_engine import SyncRunner
from ..vicidial.client import ViciClient
from ..vicidial.errors import MissingParameterError

router = APIRouter(prefix="/api/agents", tags=["agents"])


@router.get("/stats")
async def all_agent_stats(
    start: str | None = None,
    end: str | None = None,
    campaign_id: str | None = None,
    client: ViciClient = Depends(get_vici_client),
    store: SnapshotStore = Depends(get_snapshot_store),
):
    data = await report_svc.all_agent_stats(client, store, start, end, campaign_id)
    return {"success": True, "data": data}


@router.get("/stats/single")
async def single_agent_stats(
    start: str | None = None,
    end: str | None = None,
    agent_user: str | None = None,
    campaign_id: str | None = None,
    client: ViciClient = Depends(get_vici_client),
    store: SnapshotStore = Depends(get_snapshot_store),
):
    data = await report_svc.single_agent_stats(client, store, start, end, agent_user, campaign_id)
    return {"success": True, "data": data}


@router.get("/stats/paginated")
async def agents_paginated(
    page: int = 1,
    perPage: int = 8,
    search: str = "",
    client: ViciClient = Depends(get_vici_client),
    db: AsyncSession = Depends(get_db),
):
    active = await report_svc.active_agents_or_empty(client)
    data = await agent_svc.agents_page(
        db, page=page, per_page=perPage, search=search or None, active_agents=active
    )
    return {"success": True, "data": data}


@router.get("/stats/logged-in")
async def logged_in_agents(client: ViciClient = Depends(get_vici_client)):
    active = await report_svc.logged_in_agents(client)
    return {"success": True, "data": {"active_agents": active, "count": len(active)}}


@router.get("/campaigns")
async def agent_campaigns(
    agent_user: str | None = None,
    user: str | None = None,
    password: str | None = Query(None, alias="pass"),
    reconciler: AgentCampaignReconciler = Depends(get_reconciler),
):
    if not agent_user:
        raise MissingParameterError("agent_user required")
    data = await reconciler.reconcile_agent(agent_user, user=user, password=password)
    return {"success": True, "data": data}


@router.get("/campaigns/paginated")
async def agent_campaigns_paginated(
    agent_user: str | None = None,
    page: int = 1,
    perPage: int = 8,
    db: AsyncSession = Depends(get_db),
):
    if not agent_user:
        raise MissingParameterError("agent_user required")
    data = await agent_svc.agent_campaigns_page(db, agent_user, page=page, per_page=perPage)
    if data is None:
        return JSONResponse({"success": False, "error": "Agent not found"}, status_code=404)
    return {"success": True, "data": data}


@router.api_route("/campaigns/sync-all", methods=["GET", "POST"])
async def sync_all_agents_campaigns(
    start: str | None = None,
    end: str | None = None,
    user: str | None = None,
    password: str | None = Query(None, alias="pass"),
    runner: SyncRunner = Depends(get_sync_runner),
):
    result = await runner.run(start, end, user=user, password=password)
    if result.skipped:
        return JSONResponse({"success": False, "error": result.error}, status_code=409)
    if not result.success:
        return JSONResponse({"success": False, "error": result.error}, status_code=500)
    return {"success": True, "data": result.to_data()}


@router.get("/campaigns/counts")
async def agent_campaign_counts(store: SnapshotStore = Depends(get_snapshot_store)):
    counts, source = store.read_campaign_counts()
    return {"success": True, "data": counts, "source": source}


@router.get("/campaigns/details")
async def campaign_details(
    campaign_ids: str | None = None,
    agent_user: str | None = None,
    concurrency: int = 6,
    reconciler: AgentCampaignReconciler = Depends(get_reconciler),
):
    ids: list[str] = []
    if campaign_ids:
        ids = [s for s in re.split(r"[,;\s]+", campaign_ids) if s]
    if agent_user and not ids:
        ids = await reconciler.campaign_ids_for_agent(agent_user)
    if not ids:
        return {"success": True, "data": []}

    data = await reconciler.resolver.resolve_batch(ids, concurrency=concurrency)
    return {"success": True, "data": data}
