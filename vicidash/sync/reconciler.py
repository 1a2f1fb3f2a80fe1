"""Agent -> campaign reconciliation against VICIdial.

A reconciliation pass:

1. fetches the agent roster (`agent_stats_export` over a lookback window);
   failure here aborts the pass,
2. seeds the campaign name cache from a local map file, or with one bulk
   `campaigns_list` call when there is no local map,
3. fetches each agent's allowed campaigns (`agent_campaigns`), one agent at
   a time with a short pause every few agents, naming campaigns from the
   cache only,
4. writes per-agent snapshot files and the consolidated snapshot.

Per-agent failures are recorded on that agent's snapshot and never abort
the pass.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Any, Sequence

from ..config import ViciSettings
from ..schemas.sync import AgentCampaignSnapshot, CampaignRef, ReconcileResult
from ..vicidial.client import ViciClient
from ..vicidial.dates import fix_date_format, lookback_window
from ..vicidial.errors import RemoteError
from ..vicidial.fields import (
    AGENT_NAME_FIELDS,
    AGENT_USER_FIELDS,
    USER_GROUP_FIELDS,
    pick_agent_info_name,
    pick_field,
)
from ..vicidial.parser import as_rows, parse_delimited
from .name_cache import CampaignNameCache
from .resolver import CampaignNameResolver, load_campaign_map
from .snapshots import LAST_AGENT_FILE, SnapshotStore

logger = logging.getLogger(__name__)

AGENT_NAME_LOOKBACK_DAYS = 30


def _clean_codes(codes: Sequence[str]) -> list[str]:
    unique: list[str] = []
    for code in codes:
        code = re.sub(r"[\s|,]", "", code)
        if code and code not in unique:
            unique.append(code)
    return unique


def split_campaign_line(raw: str) -> tuple[list[str], list[str]]:
    """Extract (campaign codes, in-groups) from an `agent_campaigns` body.

    The data line is the second line when a header is present. Pipe
    format carries hyphen-joined campaigns in the second segment and
    in-groups in the third; otherwise the whole line is hyphen-delimited.
    Stray whitespace, pipes and commas are stripped from each code.
    """
    lines = [line for line in re.split(r"\r?\n", (raw or "").strip()) if line.strip()]
    if not lines:
        return [], []
    data_line = lines[1] if len(lines) > 1 else lines[0]

    ingroups: list[str] = []
    if "|" in data_line:
        parts = [p.strip() for p in data_line.split("|")]
        codes = parts[1].split("-") if len(parts) > 1 and parts[1] else []
        if len(parts) > 2 and parts[2]:
            ingroups = parts[2].split("-")
    else:
        codes = data_line.split("-")

    return _clean_codes(codes), _clean_codes(ingroups)


def _credentials(user: str | None, password: str | None) -> dict[str, str]:
    creds = {}
    if user:
        creds["user"] = user
    if password:
        creds["pass"] = password
    return creds


class AgentCampaignReconciler:
    def __init__(
        self,
        client: ViciClient,
        resolver: CampaignNameResolver,
        snapshots: SnapshotStore,
        *,
        campaign_map_paths: Sequence[str | Path] = (),
        roster_window_days: int = 90,
        pace_every: int = 5,
        pace_delay_seconds: float = 0.1,
    ):
        self.client = client
        self.resolver = resolver
        self.snapshots = snapshots
        self.campaign_map_paths = list(campaign_map_paths)
        self.roster_window_days = roster_window_days
        self.pace_every = pace_every
        self.pace_delay_seconds = pace_delay_seconds

    @classmethod
    def from_settings(
        cls,
        client: ViciClient,
        cache: CampaignNameCache,
        settings: ViciSettings,
    ) -> "AgentCampaignReconciler":
        resolver = CampaignNameResolver(client, cache, concurrency=settings.resolve_concurrency)
        return cls(
            client,
            resolver,
            SnapshotStore(settings.data_path),
            campaign_map_paths=settings.campaign_map_candidates,
            roster_window_days=settings.roster_window_days,
            pace_every=settings.pace_every,
            pace_delay_seconds=settings.pace_delay_seconds,
        )

    async def fetch_roster(
        self,
        start: str | None = None,
        end: str | None = None,
        *,
        user: str | None = None,
        password: str | None = None,
    ) -> list[dict[str, str]]:
        default_start, default_end = lookback_window(self.roster_window_days)
        params = {
            "DB": "0",
            "stage": "pipe",
            "header": "YES",
            "time_format": "HF",
            "datetime_start": fix_date_format(start) if start else default_start,
            "datetime_end": fix_date_format(end) if end else default_end,
            **_credentials(user, password),
        }
        raw = await self.client.call("agent_stats_export", params)
        return as_rows(parse_delimited(raw))

    async def prime_cache(self) -> str:
        """Seed the name cache; returns where names came from."""
        mapping, path = load_campaign_map(self.campaign_map_paths)
        if path is not None:
            self.resolver.seed_from_map(mapping)
            return "local_map"

        logger.info("No local campaign map found - fetching names from VICIdial")
        try:
            await self.resolver.seed_from_remote()
        except Exception as e:
            logger.warning("Could not fetch bulk campaign names, ids will be used as names: %s", e)
            return "none"
        return "remote"

    async def _fetch_campaigns_raw(
        self, agent_user: str, user: str | None, password: str | None
    ) -> str:
        params = {
            "agent_user": agent_user,
            "ignore_agentdirect": "N",
            "stage": "pipe",
            "header": "YES",
            **_credentials(user, password),
        }
        return str(await self.client.call("agent_campaigns", params) or "").strip()

    async def _agent_campaign_codes(
        self, agent_user: str, user: str | None, password: str | None
    ) -> tuple[list[str], list[str]]:
        """(codes, in-groups); an empty or ERROR reply means no campaigns."""
        try:
            raw = await self._fetch_campaigns_raw(agent_user, user, password)
        except RemoteError as e:
            if not e.message.upper().startswith("ERROR"):
                raise
            logger.info("No campaigns for agent %s: %s", agent_user, e.message)
            return [], []
        if not raw or raw.upper().startswith("ERROR:"):
            return [], []
        return split_campaign_line(raw)

    def _campaign_refs(self, codes: Sequence[str]) -> list[CampaignRef]:
        return [CampaignRef(id=code, name=self.resolver.name_for(code)) for code in codes]

    async def reconcile_all(
        self,
        start: str | None = None,
        end: str | None = None,
        *,
        user: str | None = None,
        password: str | None = None,
    ) -> ReconcileResult:
        roster = await self.fetch_roster(start, end, user=user, password=password)
        logger.info("Received %d agents from VICIdial", len(roster))

        await self.prime_cache()

        result = ReconcileResult(total_agents=len(roster))
        handled = 0
        for row in roster:
            agent_user = pick_field(row, AGENT_USER_FIELDS)
            if not agent_user or agent_user in result.results:
                continue

            agent_name = pick_field(row, AGENT_NAME_FIELDS)
            user_group = pick_field(row, USER_GROUP_FIELDS)
            try:
                codes, _ = await self._agent_campaign_codes(agent_user, user, password)
                snapshot = AgentCampaignSnapshot(
                    agent_user=agent_user,
                    agent_name=agent_name,
                    user_group=user_group,
                    campaigns=self._campaign_refs(codes),
                )
                self.snapshots.write_agent_snapshot(snapshot)
                result.agents_processed += 1
            except Exception as e:
                logger.exception("Error syncing campaigns for agent %s", agent_user)
                snapshot = AgentCampaignSnapshot(
                    agent_user=agent_user,
                    agent_name=agent_name,
                    user_group=user_group,
                    error=str(e),
                )
                result.failed += 1

            result.results[agent_user] = snapshot
            handled += 1
            if self.pace_every and handled % self.pace_every == 0:
                await asyncio.sleep(self.pace_delay_seconds)

        self.snapshots.write_consolidated(result.results)
        logger.info(
            "Synced campaigns for %d/%d agents (%d failed). Total campaigns: %d",
            result.agents_processed,
            result.total_agents,
            result.failed,
            result.total_campaigns,
        )
        return result

    async def campaign_ids_for_agent(self, agent_user: str) -> list[str]:
        """Campaign codes currently allowed for one agent; [] on any failure."""
        try:
            codes, _ = await self._agent_campaign_codes(agent_user, None, None)
        except RemoteError as e:
            logger.warning("agent_campaigns failed for %s: %s", agent_user, e)
            return []
        return codes

    async def lookup_agent_name(
        self,
        agent_user: str,
        *,
        user: str | None = None,
        password: str | None = None,
    ) -> str | None:
        """`agent_info` first, then a 30 day `agent_stats_export`."""
        creds = _credentials(user, password)
        try:
            raw = await self.client.call("agent_info", {"agent_user": agent_user, **creds})
            rows = as_rows(parse_delimited(raw))
            name = pick_agent_info_name(rows[0]) if rows else None
            if name:
                return name
        except RemoteError as e:
            logger.debug("agent_info failed for %s: %s", agent_user, e)

        start, end = lookback_window(AGENT_NAME_LOOKBACK_DAYS)
        try:
            raw = await self.client.call("agent_stats_export", {
                "DB": "0",
                "stage": "pipe",
                "time_format": "M",
                "header": "YES",
                "datetime_start": start,
                "datetime_end": end,
                "agent_user": agent_user,
                **creds,
            })
        except RemoteError as e:
            logger.debug("agent_stats_export name lookup failed for %s: %s", agent_user, e)
            return None
        rows = as_rows(parse_delimited(raw))
        return pick_field(rows[0], AGENT_NAME_FIELDS, positional_fallback=1) if rows else None

    async def reconcile_agent(
        self,
        agent_user: str,
        *,
        user: str | None = None,
        password: str | None = None,
    ) -> dict[str, Any]:
        """Live reconciliation of a single agent (no database writes)."""
        raw = await self._fetch_campaigns_raw(agent_user, user, password)
        if not raw:
            return {
                "agent_user": agent_user,
                "agent_name": None,
                "campaigns": [],
                "ingroups": [],
                "count_campaigns": 0,
                "count_ingroups": 0,
                "raw": raw,
            }
        if raw.upper().startswith("ERROR:"):
            raise RemoteError(raw)

        codes, ingroups = split_campaign_line(raw)

        mapping, _ = load_campaign_map(self.campaign_map_paths)
        self.resolver.seed_from_map(mapping)
        if any(code not in self.resolver.cache for code in codes):
            try:
                await self.resolver.seed_from_remote()
            except Exception as e:
                logger.warning("Could not fetch campaign names for %s: %s", agent_user, e)

        agent_name = await self.lookup_agent_name(agent_user, user=user, password=password)

        formatted = {
            "agent_user": agent_user,
            "agent_name": agent_name,
            "campaigns": [c.model_dump() for c in self._campaign_refs(codes)],
            "ingroups": ingroups,
            "count_campaigns": len(codes),
            "count_ingroups": len(ingroups),
            "raw": raw,
        }
        self.snapshots.write_agent_snapshot(formatted)
        self.snapshots.write_json(LAST_AGENT_FILE, formatted)
        return formatted
