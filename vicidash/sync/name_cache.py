"""Process-wide campaign id -> display name cache with JSON persistence.

Entries never expire. The file is rewritten after every new insertion;
writes are best-effort and carry no delivery guarantee. Listeners
registered through ``on_flush`` are told about every write attempt.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, Iterable, Mapping

logger = logging.getLogger(__name__)

FlushListener = Callable[[Path, bool], None]


class CampaignNameCache:
    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path else None
        self._names: dict[str, str] = {}
        self._listeners: list[FlushListener] = []

    def __contains__(self, campaign_id: object) -> bool:
        return str(campaign_id) in self._names

    def __len__(self) -> int:
        return len(self._names)

    def on_flush(self, listener: FlushListener) -> None:
        self._listeners.append(listener)

    def get(self, campaign_id: str) -> str | None:
        return self._names.get(str(campaign_id))

    def set(self, campaign_id: str, name: str) -> bool:
        """Store a name; returns True (and flushes) when the entry changed."""
        key = str(campaign_id)
        value = str(name)
        if self._names.get(key) == value:
            return False
        self._names[key] = value
        self.flush_to_disk()
        return True

    def seed(self, entries: Mapping[str, str] | Iterable[tuple[str, str]]) -> int:
        """Add entries for ids not cached yet. Returns how many were added."""
        items = entries.items() if isinstance(entries, Mapping) else entries
        added = 0
        for campaign_id, name in items:
            key = str(campaign_id).strip()
            if not key or key in self._names:
                continue
            self._names[key] = str(name).strip() or key
            added += 1
        if added:
            self.flush_to_disk()
        return added

    def as_dict(self) -> dict[str, str]:
        return dict(self._names)

    def load_from_disk(self) -> int:
        """Merge the persisted file into memory; missing/corrupt -> no-op."""
        if not self.path or not self.path.is_file():
            return 0
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable campaign name cache %s: %s", self.path, e)
            return 0
        if not isinstance(data, dict):
            logger.warning("Ignoring campaign name cache %s: not a JSON object", self.path)
            return 0
        for key, value in data.items():
            self._names[str(key)] = str(value)
        return len(data)

    def flush_to_disk(self) -> bool:
        """Write the whole cache. Never raises."""
        if not self.path:
            return False
        ok = True
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as f:
                json.dump(self._names, f, indent=2, ensure_ascii=False)
        except OSError as e:
            ok = False
            logger.warning("Could not persist campaign name cache to %s: %s", self.path, e)
        for listener in self._listeners:
            listener(self.path, ok)
        return ok
