from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .models import PENDING_TTL_SECONDS

DEFAULT_DB_PATH = Path("data") / "bot.db"


@dataclass(slots=True)
class StorageConfig:
    """Location of the SQLite group database."""

    path: Path = DEFAULT_DB_PATH


@dataclass(slots=True)
class WebhookConfig:
    """Configuration for optional group-complete webhook notifications."""

    enabled: bool
    url: Optional[str] = None
    username: Optional[str] = None


@dataclass(slots=True)
class BotConfig:
    """Aggregate configuration for a bot process."""

    token: str
    guild_id: Optional[int] = None
    storage: StorageConfig = field(default_factory=StorageConfig)
    webhook: Optional[WebhookConfig] = None
    pending_ttl_seconds: float = PENDING_TTL_SECONDS
    sweep_interval_seconds: float = 60.0
    purge_orphans_on_startup: bool = True
    verbose: bool = False
