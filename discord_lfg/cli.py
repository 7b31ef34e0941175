from __future__ import annotations

import getpass
import os
import sys
from pathlib import Path
from typing import Iterable, Mapping, Optional

from .config import DEFAULT_DB_PATH, BotConfig, StorageConfig, WebhookConfig
from .errors import ConfigurationError
from .models import GroupState
from .progress import ProgressPrinter
from .utils import parse_bool, parse_positive_number, parse_snowflake


def _prompt_token() -> str:
    print("DISCORD_BOT_TOKEN is not set. The token is only kept in memory for this process.")
    return getpass.getpass("Enter the bot token: ").strip()


def _webhook_configuration(environ: Mapping[str, str]) -> Optional[WebhookConfig]:
    url = environ.get("DISCORD_LFG_WEBHOOK_URL", "").strip()
    if not url:
        return None
    if not url.startswith(("http://", "https://")):
        raise ConfigurationError("DISCORD_LFG_WEBHOOK_URL must be an http(s) URL.")
    username = environ.get("DISCORD_LFG_WEBHOOK_USERNAME", "").strip()
    return WebhookConfig(enabled=True, url=url, username=username or None)


def collect_bot_configuration(
    environ: Optional[Mapping[str, str]] = None,
    interactive: Optional[bool] = None,
) -> BotConfig:
    """Build the bot configuration from environment variables.

    The token is prompted for only when it is missing and stdin is a terminal.
    """
    environ = os.environ if environ is None else environ
    if interactive is None:
        interactive = sys.stdin.isatty()

    token = environ.get("DISCORD_BOT_TOKEN", "").strip()
    if not token and interactive:
        token = _prompt_token()
    if not token:
        raise ConfigurationError("DISCORD_BOT_TOKEN must be set.")

    guild_id = None
    raw_guild = environ.get("DISCORD_GUILD_ID", "").strip()
    if raw_guild:
        guild_id = parse_snowflake(raw_guild, "DISCORD_GUILD_ID")

    db_path = environ.get("SQLITE_PATH", "").strip()
    storage = StorageConfig(path=Path(db_path) if db_path else DEFAULT_DB_PATH)

    config = BotConfig(
        token=token,
        guild_id=guild_id,
        storage=storage,
        webhook=_webhook_configuration(environ),
    )

    raw_ttl = environ.get("DISCORD_LFG_PENDING_TTL_MINUTES", "").strip()
    if raw_ttl:
        config.pending_ttl_seconds = (
            parse_positive_number(raw_ttl, "DISCORD_LFG_PENDING_TTL_MINUTES") * 60
        )
    raw_sweep = environ.get("DISCORD_LFG_SWEEP_SECONDS", "").strip()
    if raw_sweep:
        config.sweep_interval_seconds = parse_positive_number(
            raw_sweep, "DISCORD_LFG_SWEEP_SECONDS"
        )
    raw_purge = environ.get("DISCORD_LFG_PURGE_ORPHANS", "").strip()
    if raw_purge:
        config.purge_orphans_on_startup = parse_bool(raw_purge, "DISCORD_LFG_PURGE_ORPHANS")
    raw_verbose = environ.get("DISCORD_LFG_VERBOSE", "").strip()
    if raw_verbose:
        config.verbose = parse_bool(raw_verbose, "DISCORD_LFG_VERBOSE")

    return config


def display_summary(groups: Iterable[GroupState], progress: Optional[ProgressPrinter] = None) -> None:
    """Print the restored groups and their occupancy."""
    lines = ["", "Active groups:"]
    for state in groups:
        flags = []
        if state.locked:
            flags.append("locked")
        if state.completed:
            flags.append("complete")
        suffix = f" ({', '.join(flags)})" if flags else ""
        lines.append(
            f" • {state.id} in channel {state.channel_id} - {state.filled_count}/5{suffix}"
        )
    if len(lines) == 2:
        lines.append(" • none")
    message = "\n".join(lines)
    if progress:
        progress.divider()
        progress.info(message)
    else:
        print(message)
