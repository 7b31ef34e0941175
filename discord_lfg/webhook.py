from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional

import aiohttp

from .config import WebhookConfig
from .errors import DiscordOperationError
from .models import SLOT_LABELS, GroupState
from .progress import ProgressPrinter
from .slots import occupied_slots


@dataclass(slots=True)
class GroupCompletedNotification:
    group_id: str
    channel_id: str
    guild_id: str
    roster: List[str] = field(default_factory=list)

    @classmethod
    def from_state(cls, state: GroupState) -> "GroupCompletedNotification":
        roster = [
            f"{SLOT_LABELS[slot_key]}: {assignment.user_tag} - "
            f"{assignment.wow_class} (level {assignment.level})"
            for slot_key, assignment in occupied_slots(state)
        ]
        return cls(
            group_id=state.id,
            channel_id=state.channel_id,
            guild_id=state.guild_id,
            roster=roster,
        )

    @property
    def jump_url(self) -> str:
        return f"https://discord.com/channels/{self.guild_id}/{self.channel_id}/{self.group_id}"


class WebhookNotifier:
    """Posts a notification to a webhook when a group fills up."""

    def __init__(self, config: WebhookConfig, progress: ProgressPrinter) -> None:
        self._config = config
        self._progress = progress
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=30)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def notify(self, payload: GroupCompletedNotification) -> None:
        if not self._config.enabled or not self._config.url:
            return

        session = await self._ensure_session()
        data = {
            "content": "A group is complete.",
            "embeds": [
                {
                    "title": "Group complete",
                    "description": "\n".join(payload.roster) or "No players listed.",
                    "url": payload.jump_url,
                }
            ],
        }
        if self._config.username:
            data["username"] = self._config.username

        try:
            async with session.post(self._config.url, json=data) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise DiscordOperationError(
                        f"Webhook responded with status {response.status}: {body}"
                    )
        except asyncio.TimeoutError as exc:
            raise DiscordOperationError("Webhook request timed out") from exc
        except aiohttp.ClientError as exc:
            raise DiscordOperationError(f"Webhook request failed: {exc}") from exc
        self._progress.debug(f"Completion webhook sent for group {payload.group_id}.")

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
