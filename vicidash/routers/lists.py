"""List info routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..deps import get_snapshot_store, get_vici_client
from ..services import report_svc
from ..sync.snapshots import SnapshotStore
from ..vicidial.client import ViciClient

router = APIRouter(prefix="/api/lists", tags=["lists"])


@router.get("")
async def list_info(
    list_id: str | None = None,
    client: ViciClient = Depends(get_vici_client),
    store: SnapshotStore = Depends(get_snapshot_store),
):
    return {"success": True, "data": await report_svc.list_info(client, store, list_id)}
