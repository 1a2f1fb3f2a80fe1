"""Candidate field names for VICIdial records, in priority order.

VICIdial functions are inconsistent about column naming (and local campaign
map files come in several historical shapes), so each logical field is
looked up through an ordered list of candidates.
"""

from __future__ import annotations

import re
from typing import Mapping, Sequence

CAMPAIGN_NAME_FIELDS: tuple[str, ...] = (
    "campaign_name",
    "Campaign Name",
    "Outbound Process",
    "CALLER_NAME",
)

CAMPAIGN_ID_FIELDS: tuple[str, ...] = (
    "campaign_id",
    "Outbound",
    "CAMPAIGN_ID",
    "campaign",
    "Campaign",
    "Campaign ID",
)

AGENT_USER_FIELDS: tuple[str, ...] = ("user", "agent_user", "user_id")

AGENT_NAME_FIELDS: tuple[str, ...] = ("full_name", "fullname", "name", "full")

USER_GROUP_FIELDS: tuple[str, ...] = ("user_group", "userGroup")

LOGGED_IN_USER_FIELDS: tuple[str, ...] = ("user", "agent_user", "agent")

# (id key, name key) pairs accepted in a local campaigns.json array.
CAMPAIGN_MAP_KEY_PAIRS: tuple[tuple[str, str], ...] = (
    ("campaign_id", "campaign_name"),
    ("Outbound", "Outbound Process"),
    ("Campaign", "Campaign Name"),
)

# `agent_info` has no stable name column; any key like these qualifies.
AGENT_INFO_NAME_KEY = re.compile(r"name|full|fullname|agent_name", re.IGNORECASE)


def _clean(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def pick_field(
    row: Mapping[str, object] | None,
    candidates: Sequence[str],
    *,
    positional_fallback: int | None = None,
) -> str | None:
    """Return the first non-empty candidate value (stripped).

    When no candidate matches and ``positional_fallback`` is given, the value
    at that column position is used instead.
    """
    if not row:
        return None
    for key in candidates:
        value = _clean(row.get(key))
        if value:
            return value
    if positional_fallback is not None:
        values = list(row.values())
        if 0 <= positional_fallback < len(values):
            return _clean(values[positional_fallback])
    return None


def pick_agent_info_name(row: Mapping[str, object] | None) -> str | None:
    """Best-effort display name from an `agent_info` record."""
    if not row:
        return None
    for key, value in row.items():
        if AGENT_INFO_NAME_KEY.search(key):
            return _clean(value)
    values = [v for v in (_clean(v) for v in row.values()) if v]
    if len(values) >= 2:
        return values[1]
    if values:
        return values[0]
    return None
