"""Report service - VICIdial pass-through queries with snapshot side effects.

Each report is fetched live, parsed, written to its snapshot file under the
data directory and returned. Gateway errors propagate to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..sync.snapshots import SnapshotStore, safe_name
from ..vicidial.client import ViciClient
from ..vicidial.dates import fix_date_format
from ..vicidial.errors import MissingParameterError, RemoteError
from ..vicidial.fields import LOGGED_IN_USER_FIELDS, pick_field
from ..vicidial.parser import as_rows, parse_delimited

logger = logging.getLogger(__name__)

PIPE = {"stage": "pipe", "header": "YES"}

CAMPAIGNS_FILE = "campaigns.json"


def _require(**params: Any) -> None:
    missing = [name for name, value in params.items() if not value]
    if missing:
        raise MissingParameterError(f"{', '.join(missing)} required")


async def all_agent_stats(
    client: ViciClient,
    store: SnapshotStore,
    start: str | None,
    end: str | None,
    campaign_id: str | None = None,
) -> Any:
    _require(start=start, end=end)
    params = {
        "DB": "0",
        **PIPE,
        "time_format": "HF",
        "datetime_start": fix_date_format(start),
        "datetime_end": fix_date_format(end),
    }
    if campaign_id:
        params["campaign_id"] = campaign_id
    formatted = parse_delimited(await client.call("agent_stats_export", params))
    store.write_json(f"all_agents_{safe_name(start)}_{safe_name(end)}.json", formatted)
    return formatted


async def single_agent_stats(
    client: ViciClient,
    store: SnapshotStore,
    start: str | None,
    end: str | None,
    agent_user: str | None,
    campaign_id: str | None = None,
) -> Any:
    _require(start=start, end=end, agent_user=agent_user)
    params = {
        "DB": "0",
        **PIPE,
        "time_format": "M",
        "datetime_start": fix_date_format(start),
        "datetime_end": fix_date_format(end),
        "agent_user": agent_user,
    }
    if campaign_id:
        params["campaign_id"] = campaign_id
    formatted = parse_delimited(await client.call("agent_stats_export", params))
    name = f"single_agent_{safe_name(agent_user)}_{safe_name(start)}_{safe_name(end)}.json"
    store.write_json(name, formatted)
    return formatted


async def logged_in_agents(client: ViciClient) -> list[str]:
    """Identifiers of agents currently logged in."""
    raw = await client.call("logged_in_agents", dict(PIPE))
    users = [pick_field(row, LOGGED_IN_USER_FIELDS) for row in as_rows(parse_delimited(raw))]
    return [user for user in users if user]


async def active_agents_or_empty(client: ViciClient) -> list[str]:
    """Like ``logged_in_agents`` but any failure means nobody is active."""
    try:
        return await logged_in_agents(client)
    except Exception as e:
        logger.warning("Failed to fetch active agents: %s", e)
        return []


async def call_reports(
    client: ViciClient,
    store: SnapshotStore,
    start_date: str | None,
    end_date: str | None,
    *,
    phone_number: str | None = None,
    report_type: str | None = None,
) -> Any:
    if report_type == "inbound":
        _require(phone_number=phone_number)
        # did_log_export covers a single day
        raw = await client.call("did_log_export", {
            "phone_number": phone_number,
            "date": start_date,
            **PIPE,
        })
    else:
        raw = await client.call("call_status_stats", {
            "start_date": start_date,
            "end_date": end_date,
            **PIPE,
        })
    formatted = parse_delimited(raw)
    store.write_json("call_reports.json", formatted)
    return formatted


async def links(client: ViciClient, store: SnapshotStore) -> Any:
    formatted = parse_delimited(await client.call("user_group_status"))
    store.write_json("links.json", formatted)
    return formatted


async def hopper_leads(client: ViciClient, store: SnapshotStore, campaign_id: str | None) -> Any:
    _require(campaign_id=campaign_id)
    raw = await client.call("hopper_list", {"campaign_id": campaign_id, **PIPE})
    formatted = parse_delimited(raw)
    store.write_json(f"hopper_{safe_name(campaign_id)}.json", formatted)
    return formatted


async def list_info(client: ViciClient, store: SnapshotStore, list_id: str | None) -> Any:
    raw = await client.call("list_info", {"list_id": list_id, "header": "YES", "leads_counts": "Y"})
    formatted = parse_delimited(raw)
    store.write_json("lists.json", formatted)
    return formatted


async def _hopper_or_empty(client: ViciClient, campaign_id: str) -> Any:
    try:
        return parse_delimited(await client.call("hopper_list", {"campaign_id": campaign_id}))
    except RemoteError as e:
        logger.warning("Hopper fetch failed for %s: %s", campaign_id, e)
        return []


async def dashboard(client: ViciClient, store: SnapshotStore) -> dict[str, Any]:
    campaigns = as_rows(parse_delimited(await client.call("campaigns_list")))
    hopper_data = await asyncio.gather(
        *(_hopper_or_empty(client, c.get("campaign_id", "")) for c in campaigns)
    )
    agents = parse_delimited(await client.call("logged_in_agents"))

    data = {
        "campaigns": campaigns,
        "activeCampaigns": [c for c in campaigns if c.get("active") == "Y"],
        "inactiveCampaigns": [c for c in campaigns if c.get("active") != "Y"],
        "hopperData": list(hopper_data),
        "agents": agents,
    }
    store.write_json("dashboard.json", data)
    return data


async def campaigns(client: ViciClient, store: SnapshotStore) -> list[dict[str, str]]:
    rows = as_rows(parse_delimited(await client.call("campaigns_list", dict(PIPE))))
    store.write_json(CAMPAIGNS_FILE, rows)
    return rows


def campaign_from_snapshot(store: SnapshotStore, campaign_id: str) -> dict[str, Any] | None:
    """One record from the last `campaigns.json` snapshot, or None."""
    try:
        data = store.read_json(CAMPAIGNS_FILE)
    except (OSError, ValueError) as e:
        logger.warning("Could not read %s: %s", CAMPAIGNS_FILE, e)
        return None
    if isinstance(data, dict):
        data = [data]
    for item in data or []:
        if isinstance(item, dict) and item.get("campaign_id") == campaign_id:
            return item
    return None
