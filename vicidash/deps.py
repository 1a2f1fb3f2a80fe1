"""FastAPI dependencies: settings, VICIdial client, name cache, sync runner.

Process-wide objects (the name cache and the sync runner) are created on
first use; tests replace any of these through ``app.dependency_overrides``.
"""

from __future__ import annotations

from typing import AsyncIterator

from fastapi import Depends

from .config import ViciSettings, settings
from .database import async_session_factory
from .sync.name_cache import CampaignNameCache
from .sync.reconciler import AgentCampaignReconciler
from .sync.snapshots import SnapshotStore
from .sync.sync_engine import SyncRunner
from .vicidial.client import ViciClient

_name_cache: CampaignNameCache | None = None
_sync_runner: SyncRunner | None = None


def get_settings() -> ViciSettings:
    return settings


def get_name_cache() -> CampaignNameCache:
    global _name_cache
    if _name_cache is None:
        _name_cache = CampaignNameCache(settings.cache_file)
        _name_cache.load_from_disk()
    return _name_cache


def get_sync_runner() -> SyncRunner:
    global _sync_runner
    if _sync_runner is None:
        _sync_runner = SyncRunner(
            ViciClient.from_settings, get_name_cache(), async_session_factory, settings
        )
    return _sync_runner


async def get_vici_client(
    cfg: ViciSettings = Depends(get_settings),
) -> AsyncIterator[ViciClient]:
    """Yields a VICIdial client for the duration of one request."""
    async with ViciClient.from_settings(cfg) as client:
        yield client


def get_snapshot_store(cfg: ViciSettings = Depends(get_settings)) -> SnapshotStore:
    return SnapshotStore(cfg.data_path)


def get_reconciler(
    client: ViciClient = Depends(get_vici_client),
    cache: CampaignNameCache = Depends(get_name_cache),
    cfg: ViciSettings = Depends(get_settings),
) -> AgentCampaignReconciler:
    return AgentCampaignReconciler.from_settings(client, cache, cfg)
