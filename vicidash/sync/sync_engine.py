"""Sync orchestrator - one reconciliation + persistence pass at a time."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import ViciSettings, settings as default_settings
from ..schemas.sync import SyncPassResult
from ..vicidial.client import ViciClient
from ..vicidial.errors import RemoteError
from .name_cache import CampaignNameCache
from .persistence import sync_agents_campaigns_to_db
from .reconciler import AgentCampaignReconciler

logger = logging.getLogger(__name__)

ALREADY_RUNNING = "sync already in progress"


class SyncRunner:
    """Runs full sync passes behind a single-slot guard.

    A trigger that arrives while a pass is in flight does nothing and gets
    ``skipped=True`` back; passes never queue.
    """

    def __init__(
        self,
        client_factory: Callable[[], ViciClient],
        cache: CampaignNameCache,
        session_factory: async_sessionmaker[AsyncSession],
        settings: ViciSettings | None = None,
    ):
        self.client_factory = client_factory
        self.cache = cache
        self.session_factory = session_factory
        self.settings = settings or default_settings
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def run(
        self,
        start: str | None = None,
        end: str | None = None,
        *,
        user: str | None = None,
        password: str | None = None,
    ) -> SyncPassResult:
        if self._lock.locked():
            logger.info("Sync trigger ignored: a pass is already running")
            return SyncPassResult(success=False, skipped=True, error=ALREADY_RUNNING)
        async with self._lock:
            return await self._run_pass(start, end, user, password)

    async def _run_pass(
        self,
        start: str | None,
        end: str | None,
        user: str | None,
        password: str | None,
    ) -> SyncPassResult:
        logger.info("Starting agent campaign sync")
        async with self.client_factory() as client:
            reconciler = AgentCampaignReconciler.from_settings(client, self.cache, self.settings)
            try:
                reconciled = await reconciler.reconcile_all(start, end, user=user, password=password)
            except RemoteError as e:
                logger.error("Agent roster fetch failed: %s", e.message)
                return SyncPassResult(success=False, error=f"VICIdial API error: {e.message}")

        async with self.session_factory() as db:
            db_sync = await sync_agents_campaigns_to_db(db, reconciled.results)

        return SyncPassResult(
            success=True,
            agents_processed=reconciled.agents_processed,
            total_agents=reconciled.total_agents,
            total_campaigns=reconciled.total_campaigns,
            db_sync=db_sync,
            results=reconciled.results,
        )
