"""Campaign routes - live list and lookup from the last snapshot."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..deps import get_snapshot_store, get_vici_client
from ..services import report_svc
from ..sync.snapshots import SnapshotStore
from ..vicidial.client import ViciClient

router = APIRouter(prefix="/api/campaigns", tags=["campaigns"])


@router.get("")
async def campaigns(
    client: ViciClient = Depends(get_vici_client),
    store: SnapshotStore = Depends(get_snapshot_store),
):
    return {"success": True, "data": await report_svc.campaigns(client, store)}


@router.get("/{campaign_id}")
async def campaign_detail(campaign_id: str, store: SnapshotStore = Depends(get_snapshot_store)):
    campaign = report_svc.campaign_from_snapshot(store, campaign_id)
    if campaign is None:
        return JSONResponse({"success": False, "error": "Campaign not found"}, status_code=404)
    return {"success": True, "data": campaign}
