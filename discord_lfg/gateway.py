"""Interfaces the group controller needs from the chat platform."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from .models import GroupState


class RenderResult(Enum):
    """Outcome of touching the group message.

    ``ORPHANED`` means the message or its channel is gone or unreachable;
    ``FAILED`` is a transient platform error that leaves the message in place.
    """

    RENDERED = "rendered"
    ORPHANED = "orphaned"
    FAILED = "failed"


class MessagingGateway(ABC):
    """Publishes, refreshes and removes the shared group message."""

    @abstractmethod
    async def publish_group(self, channel_id: str, draft: GroupState) -> Optional[str]:
        """Post a new group message and return its id, or ``None`` if the channel is unusable."""

    @abstractmethod
    async def render_group(self, state: GroupState) -> RenderResult:
        """Edit the group message to match ``state``."""

    @abstractmethod
    async def remove_group(self, state: GroupState) -> RenderResult:
        """Delete the group message."""


class PermissionProvider(ABC):
    @abstractmethod
    async def is_admin(self, actor_id: str, guild_id: str) -> bool:
        ...
