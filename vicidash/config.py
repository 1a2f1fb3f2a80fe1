"""vicidash configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class ViciSettings(BaseSettings):
    # VICIdial non-agent API (names shared with the legacy Node service)
    vicidial_url: str = Field(
        "", validation_alias=AliasChoices("VICIDIAL_URL", "vicidial_url")
    )
    vicidial_user: str = Field(
        "", validation_alias=AliasChoices("VICIDIAL_USER", "vicidial_user")
    )
    vicidial_pass: str = Field(
        "", validation_alias=AliasChoices("VICIDIAL_PASS", "vicidial_pass")
    )
    vicidial_timeout_seconds: float = Field(
        30.0,
        validation_alias=AliasChoices("VICIDIAL_TIMEOUT_SECONDS", "vicidial_timeout_seconds"),
    )

    port: int = Field(3000, validation_alias=AliasChoices("PORT", "port"))
    host: str = "127.0.0.1"

    environment: str = "development"
    app_title: str = "VICIdial Dashboard API"
    database_url: str = "sqlite+aiosqlite:///vicidash.db"
    echo_sql: bool = False
    log_level: str = "INFO"
    cors_origins: str = "*"

    # Snapshot files (cache, per-agent campaigns, reports)
    data_dir: str = "vicidial"
    # Comma-separated candidate locations of a local campaign id -> name map.
    # Empty means <cwd>/vicidial/campaigns.json then <data_dir>/campaigns.json.
    campaign_map_paths: str = ""

    roster_window_days: int = 90
    resolve_concurrency: int = 6
    pace_every: int = 5
    pace_delay_seconds: float = 0.1

    scheduler_enabled: bool = True
    sync_hours: str = "0,15"
    sync_timezone: str = "America/Los_Angeles"

    model_config = {
        "env_prefix": "VICIDASH_",
        "env_file": ".env",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)

    @property
    def cache_file(self) -> Path:
        return self.data_path / "campaign_name_cache.json"

    @property
    def campaign_map_candidates(self) -> list[Path]:
        if self.campaign_map_paths.strip():
            return [
                Path(item.strip())
                for item in self.campaign_map_paths.split(",")
                if item.strip()
            ]
        candidates = [Path.cwd() / "vicidial" / "campaigns.json", self.data_path / "campaigns.json"]
        unique: list[Path] = []
        for path in candidates:
            if path.resolve() not in {p.resolve() for p in unique}:
                unique.append(path)
        return unique

    @property
    def sync_hours_list(self) -> list[int]:
        hours: set[int] = set()
        for item in self.sync_hours.split(","):
            item = item.strip()
            if not item:
                continue
            hour = int(item)
            if not 0 <= hour <= 23:
                raise ValueError(f"sync hour out of range: {hour}")
            hours.add(hour)
        return sorted(hours)

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}


settings = ViciSettings()
