"""Call report routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..deps import get_snapshot_store, get_vici_client
from ..services import report_svc
from ..sync.snapshots import SnapshotStore
from ..vicidial.client import ViciClient

router = APIRouter(prefix="/api/calls", tags=["calls"])


@router.get("/reports")
async def call_reports(
    start_date: str | None = None,
    end_date: str | None = None,
    phone_number: str | None = None,
    type: str | None = None,
    client: ViciClient = Depends(get_vici_client),
    store: SnapshotStore = Depends(get_snapshot_store),
):
    data = await report_svc.call_reports(
        client, store, start_date, end_date, phone_number=phone_number, report_type=type
    )
    return {"success": True, "data": data}


@router.get("/links")
async def links(
    client: ViciClient = Depends(get_vici_client),
    store: SnapshotStore = Depends(get_snapshot_store),
):
    return {"success": True, "data": await report_svc.links(client, store)}
