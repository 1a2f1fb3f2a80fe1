"""Campaign id -> name resolution (cache, local map file, live lookup)."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Sequence

from ..vicidial.client import ViciClient
from ..vicidial.fields import (
    CAMPAIGN_ID_FIELDS,
    CAMPAIGN_MAP_KEY_PAIRS,
    CAMPAIGN_NAME_FIELDS,
    pick_field,
)
from ..vicidial.parser import as_rows, parse_delimited
from .name_cache import CampaignNameCache

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 6


def _map_from_payload(payload: Any) -> dict[str, str]:
    mapping: dict[str, str] = {}
    if isinstance(payload, list):
        for item in payload:
            if not isinstance(item, dict):
                continue
            for id_key, name_key in CAMPAIGN_MAP_KEY_PAIRS:
                cid, name = item.get(id_key), item.get(name_key)
                if cid and name:
                    mapping[str(cid).strip()] = str(name).strip()
                    break
    elif isinstance(payload, dict):
        for cid, name in payload.items():
            mapping[str(cid)] = str(name)
    return mapping


def load_campaign_map(paths: Sequence[str | Path]) -> tuple[dict[str, str], Path | None]:
    """Load the first readable local campaign map among ``paths``.

    Returns ``({}, None)`` when none exists or parses.
    """
    for candidate in paths:
        path = Path(candidate)
        if not path.is_file():
            continue
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Could not load campaign map from %s: %s", path, e)
            continue
        mapping = _map_from_payload(payload)
        logger.info("Loaded %d campaign names from local map: %s", len(mapping), path)
        return mapping, path
    return {}, None


def campaign_rows_to_names(rows: Iterable[dict[str, str]]) -> dict[str, str]:
    """id -> name for `campaigns_list` rows that carry both."""
    names: dict[str, str] = {}
    for row in rows:
        cid = pick_field(row, CAMPAIGN_ID_FIELDS)
        name = pick_field(row, CAMPAIGN_NAME_FIELDS)
        if cid and name:
            names[cid] = name
    return names


class CampaignNameResolver:
    """Resolves campaign ids to display names through the shared cache."""

    def __init__(
        self,
        client: ViciClient,
        cache: CampaignNameCache,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
    ):
        self.client = client
        self.cache = cache
        self.concurrency = concurrency

    async def resolve_one(
        self,
        campaign_id: str,
        *,
        user: str | None = None,
        password: str | None = None,
    ) -> dict[str, str]:
        if not campaign_id:
            return {"id": campaign_id, "name": campaign_id}
        cached = self.cache.get(campaign_id)
        if cached is not None:
            return {"id": campaign_id, "name": cached}

        name = campaign_id
        params = {"campaign_id": campaign_id, "stage": "pipe", "header": "YES"}
        if user:
            params["user"] = user
        if password:
            params["pass"] = password
        try:
            raw = await self.client.call("campaigns_list", params)
            rows = as_rows(parse_delimited(raw))
            if rows:
                name = pick_field(rows[0], CAMPAIGN_NAME_FIELDS, positional_fallback=1) or campaign_id
        except Exception as e:
            logger.warning("Campaign name lookup failed for %s: %s", campaign_id, e)

        self.cache.set(campaign_id, name)
        return {"id": campaign_id, "name": name}

    async def resolve_batch(
        self,
        campaign_ids: Sequence[str],
        concurrency: int | None = None,
    ) -> list[dict[str, str]]:
        """Resolve many ids, at most ``concurrency`` remote lookups in flight."""
        limit = max(int(concurrency or self.concurrency), 1)
        ids = [str(cid) for cid in campaign_ids if cid]

        missing: list[str] = []
        for cid in ids:
            if cid not in self.cache and cid not in missing:
                missing.append(cid)

        for i in range(0, len(missing), limit):
            window = missing[i:i + limit]
            await asyncio.gather(*(self.resolve_one(cid) for cid in window))

        return [{"id": cid, "name": self.cache.get(cid) or cid} for cid in ids]

    def seed_from_map(self, mapping: dict[str, str]) -> int:
        return self.cache.seed(mapping)

    async def seed_from_remote(self) -> int:
        """Bulk `campaigns_list` into the cache (ids already cached are kept)."""
        raw = await self.client.call(
            "campaigns_list", {"stage": "pipe", "header": "YES"}
        )
        names = campaign_rows_to_names(as_rows(parse_delimited(raw)))
        added = self.cache.seed(names)
        logger.info("Fetched %d campaign names from VICIdial", added)
        return added

    def name_for(self, campaign_id: str) -> str:
        return self.cache.get(campaign_id) or campaign_id
