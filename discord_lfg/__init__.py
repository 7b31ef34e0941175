"""Discord group-finder bot for five-player groups."""

from .config import BotConfig, StorageConfig, WebhookConfig
from .controller import Actor, GroupController, InteractionEvent, Reply
from .discord_client import LfgBot, LfgClient
from .cli import collect_bot_configuration, display_summary
from .models import GroupState, PendingSelection, RoleFamily, SlotAssignment, SlotKey
from .registry import GroupRegistry
from .storage import GroupStore, SQLiteGroupStore

__all__ = [
    "BotConfig",
    "StorageConfig",
    "WebhookConfig",
    "Actor",
    "GroupController",
    "InteractionEvent",
    "Reply",
    "LfgBot",
    "LfgClient",
    "collect_bot_configuration",
    "display_summary",
    "GroupState",
    "PendingSelection",
    "RoleFamily",
    "SlotAssignment",
    "SlotKey",
    "GroupRegistry",
    "GroupStore",
    "SQLiteGroupStore",
]
