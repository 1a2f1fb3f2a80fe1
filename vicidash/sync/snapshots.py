"""JSON snapshot files under the data directory.

Snapshots are full overwrites, pretty printed, and always reflect the last
writer. The relational store stays the source of truth; these files are a
quick-read mirror (campaign counts, report dumps).
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Mapping

from ..schemas.sync import AgentCampaignSnapshot

logger = logging.getLogger(__name__)

CONSOLIDATED_FILE = "all_agents_campaigns.json"
LAST_AGENT_FILE = "agent_campaigns.json"
AGENT_FILE_PREFIX = "agent_campaigns_"


def safe_name(value: str) -> str:
    """Filename-safe token: anything outside [a-zA-Z0-9_-] becomes `_`."""
    return re.sub(r"[^a-zA-Z0-9_-]", "_", str(value))


class SnapshotStore:
    def __init__(self, root: str | Path):
        self.root = Path(root)

    def path_for(self, name: str) -> Path:
        return self.root / name

    def agent_path(self, agent_user: str) -> Path:
        return self.root / f"{AGENT_FILE_PREFIX}{safe_name(agent_user)}.json"

    def write_json(self, name: str, payload: Any) -> Path:
        return self._write(self.path_for(name), payload)

    def _write(self, path: Path, payload: Any) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False, default=str)
        return path

    def read_json(self, name: str) -> Any | None:
        path = self.path_for(name)
        if not path.is_file():
            return None
        return json.loads(path.read_text(encoding="utf-8") or "null")

    def write_agent_snapshot(self, snapshot: AgentCampaignSnapshot | Mapping[str, Any]) -> Path:
        if isinstance(snapshot, AgentCampaignSnapshot):
            payload = snapshot.to_json()
            agent_user = snapshot.agent_user
        else:
            payload = dict(snapshot)
            agent_user = str(payload.get("agent_user", ""))
        return self._write(self.agent_path(agent_user), payload)

    def write_consolidated(self, results: Mapping[str, AgentCampaignSnapshot]) -> Path:
        payload = {agent: snap.to_json() for agent, snap in results.items()}
        return self.write_json(CONSOLIDATED_FILE, payload)

    def read_campaign_counts(self) -> tuple[dict[str, int], str]:
        """agent -> campaign count from the consolidated file, else per-agent files."""
        consolidated = self.read_json(CONSOLIDATED_FILE)
        if isinstance(consolidated, dict):
            counts = {
                str(agent): int((data or {}).get("count_campaigns") or 0)
                for agent, data in consolidated.items()
            }
            return counts, "consolidated"

        counts: dict[str, int] = {}
        if not self.root.is_dir():
            return counts, "individual_files"
        for path in sorted(self.root.glob(f"{AGENT_FILE_PREFIX}*.json")):
            try:
                data = json.loads(path.read_text(encoding="utf-8") or "{}")
            except (OSError, ValueError) as e:
                logger.warning("Skipping unreadable snapshot %s: %s", path.name, e)
                continue
            if not isinstance(data, dict):
                continue
            agent = data.get("agent_user") or data.get("agent") or path.stem[len(AGENT_FILE_PREFIX):]
            campaigns = data.get("campaigns")
            if isinstance(campaigns, list):
                count = len(campaigns)
            elif isinstance(data.get("count_campaigns"), int):
                count = data["count_campaigns"]
            else:
                count = 0
            counts[str(agent)] = count
        return counts, "individual_files"
