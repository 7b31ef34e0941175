from __future__ import annotations

from typing import Optional

import discord

from .errors import DiscordOperationError
from .gateway import PermissionProvider
from .progress import ProgressPrinter


class DiscordPermissionProvider(PermissionProvider):
    """Answers "is this user an administrator of this guild?" from Discord."""

    def __init__(self, client: discord.Client, progress: Optional[ProgressPrinter] = None) -> None:
        self._client = client
        self._progress = progress or ProgressPrinter()

    async def _resolve_guild(self, guild_id: int) -> Optional[discord.Guild]:
        guild = self._client.get_guild(guild_id)
        if guild is not None:
            return guild
        try:
            return await self._client.fetch_guild(guild_id)
        except discord.NotFound:
            return None
        except discord.HTTPException as exc:
            raise DiscordOperationError(
                f"Failed to fetch guild {guild_id} (status {exc.status})."
            ) from exc

    async def _resolve_member(
        self, guild: discord.Guild, user_id: int
    ) -> Optional[discord.Member]:
        member = guild.get_member(user_id)
        if member is not None:
            return member
        try:
            return await guild.fetch_member(user_id)
        except discord.NotFound:
            return None
        except discord.HTTPException as exc:
            raise DiscordOperationError(
                f"Failed to fetch member {user_id} (status {exc.status})."
            ) from exc

    async def is_admin(self, actor_id: str, guild_id: str) -> bool:
        try:
            guild_key = int(guild_id)
            user_key = int(actor_id)
        except ValueError:
            return False

        guild = await self._resolve_guild(guild_key)
        if guild is None:
            self._progress.debug(f"Guild {guild_id} is not reachable; treating {actor_id} as non-admin.")
            return False
        if guild.owner_id == user_key:
            return True
        member = await self._resolve_member(guild, user_key)
        if member is None:
            return False
        return member.guild_permissions.administrator
