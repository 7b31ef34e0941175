from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import discord
from discord import app_commands

from .cli import display_summary
from .config import BotConfig
from .controller import ADMIN_ONLY, Actor, GroupController, InteractionEvent, Reply
from .errors import AuthenticationError, DiscordOperationError, PersistenceError, SelectionRejected
from .gateway import MessagingGateway, RenderResult
from .models import GroupState
from .permissions import DiscordPermissionProvider
from .progress import ProgressPrinter
from .registry import GroupRegistry
from .rendering import (
    build_group_embed,
    build_group_view,
    build_panel_embed,
    build_panel_view,
    build_prompt_view,
)
from .storage import GroupStore, SQLiteGroupStore
from .utils import is_group_custom_id
from .webhook import WebhookNotifier

GENERIC_ERROR = "Something went wrong. Please try again."


class DiscordMessagingGateway(MessagingGateway):
    """Publishes and refreshes group messages through the bot client."""

    def __init__(self, client: discord.Client, progress: ProgressPrinter) -> None:
        self._client = client
        self._progress = progress

    async def _resolve_channel(self, channel_id: str) -> Optional[discord.abc.Messageable]:
        """Return the channel, or ``None`` if it is gone or not visible to the bot.

        Other HTTP errors propagate so callers can treat them as transient.
        """
        try:
            key = int(channel_id)
        except ValueError:
            return None
        channel = self._client.get_channel(key)
        if channel is None:
            try:
                channel = await self._client.fetch_channel(key)
            except (discord.NotFound, discord.Forbidden):
                return None
        if not isinstance(channel, discord.abc.Messageable):
            return None
        return channel

    async def publish_group(self, channel_id: str, draft: GroupState) -> Optional[str]:
        try:
            channel = await self._resolve_channel(channel_id)
            if channel is None:
                return None
            message = await channel.send(embed=build_group_embed(draft), view=build_group_view(draft))
        except discord.Forbidden:
            return None
        except discord.HTTPException as exc:
            raise DiscordOperationError(
                f"Discord API responded with status {exc.status} while posting the group."
            ) from exc
        return str(message.id)

    async def render_group(self, state: GroupState) -> RenderResult:
        try:
            channel = await self._resolve_channel(state.channel_id)
            if channel is None:
                return RenderResult.ORPHANED
            message = await channel.fetch_message(int(state.id))
            await message.edit(embed=build_group_embed(state), view=build_group_view(state))
        except (discord.NotFound, discord.Forbidden):
            return RenderResult.ORPHANED
        except discord.HTTPException as exc:
            self._progress.warning(f"Editing group {state.id} failed (status {exc.status}).")
            return RenderResult.FAILED
        return RenderResult.RENDERED

    async def remove_group(self, state: GroupState) -> RenderResult:
        try:
            channel = await self._resolve_channel(state.channel_id)
            if channel is None:
                return RenderResult.ORPHANED
            message = await channel.fetch_message(int(state.id))
            await message.delete()
        except (discord.NotFound, discord.Forbidden):
            return RenderResult.ORPHANED
        except discord.HTTPException as exc:
            self._progress.warning(f"Deleting group {state.id} failed (status {exc.status}).")
            return RenderResult.FAILED
        return RenderResult.RENDERED


def _actor_from(interaction: discord.Interaction) -> Actor:
    return Actor(user_id=str(interaction.user.id), tag=str(interaction.user))


class LfgClient(discord.Client):
    def __init__(
        self,
        config: BotConfig,
        store: GroupStore,
        progress: ProgressPrinter,
        notifier: Optional[WebhookNotifier] = None,
        *,
        intents: Optional[discord.Intents] = None,
    ) -> None:
        super().__init__(intents=intents or discord.Intents.default())
        self._config = config
        self._progress = progress
        self.tree = app_commands.CommandTree(self)
        self._permissions = DiscordPermissionProvider(self, progress)
        self._controller = GroupController(
            GroupRegistry(),
            store,
            DiscordMessagingGateway(self, progress),
            self._permissions,
            progress,
            notifier,
            pending_ttl=config.pending_ttl_seconds,
        )
        self._sweeper: Optional[asyncio.Task] = None

    @property
    def controller(self) -> GroupController:
        return self._controller

    async def setup_hook(self) -> None:
        try:
            loaded = self._controller.load_groups()
        except PersistenceError as exc:
            self._progress.error(f"Could not restore groups: {exc}")
        else:
            self._progress.step(f"Restored {len(loaded)} group(s) from storage.")

        self._register_commands()
        await self._sync_commands()
        self.loop.create_task(self._reconcile_groups())
        self._sweeper = self.loop.create_task(self._sweep_pending())

    async def on_ready(self) -> None:
        self._progress.success(f"Logged in as {self.user}.")

    async def close(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
        await super().close()

    def _register_commands(self) -> None:
        @self.tree.command(name="creategroup", description="Create a five-player group in this channel")
        @app_commands.guild_only()
        async def creategroup(interaction: discord.Interaction) -> None:
            await self._create_from_command(interaction)

        @self.tree.command(name="channelgroup", description="Publish the group-finder panel in a channel")
        @app_commands.guild_only()
        @app_commands.default_permissions(administrator=True)
        @app_commands.describe(channel="Channel that receives the panel")
        async def channelgroup(interaction: discord.Interaction, channel: discord.TextChannel) -> None:
            await self._publish_panel(interaction, channel)

    async def _sync_commands(self) -> None:
        try:
            if self._config.guild_id:
                guild = discord.Object(id=self._config.guild_id)
                self.tree.copy_global_to(guild=guild)
                await self.tree.sync(guild=guild)
            else:
                await self.tree.sync()
        except discord.HTTPException as exc:
            raise DiscordOperationError(
                f"Discord API responded with status {exc.status} while registering commands."
            ) from exc

    async def _reconcile_groups(self) -> None:
        await self.wait_until_ready()
        purge = self._config.purge_orphans_on_startup
        orphans = await self._controller.reconcile(purge=purge)
        if orphans:
            verb = "Purged" if purge else "Found"
            self._progress.warning(
                f"{verb} {len(orphans)} orphaned group(s): {', '.join(state.id for state in orphans)}"
            )
        display_summary(self._controller.registry, progress=self._progress)

    async def _sweep_pending(self) -> None:
        await self.wait_until_ready()
        while not self.is_closed():
            await asyncio.sleep(self._config.sweep_interval_seconds)
            self._controller.sweep_pending()

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        if interaction.type is not discord.InteractionType.component:
            return
        data: Dict[str, Any] = interaction.data or {}
        custom_id = data.get("custom_id")
        if not is_group_custom_id(custom_id):
            return

        event = InteractionEvent(
            actor=_actor_from(interaction),
            custom_id=custom_id,
            values=[str(value) for value in data.get("values", [])],
            message_id=str(interaction.message.id) if interaction.message else None,
            channel_id=str(interaction.channel_id) if interaction.channel_id else None,
            guild_id=str(interaction.guild_id) if interaction.guild_id else None,
        )
        try:
            reply = await self._controller.dispatch(event)
        except Exception:
            await self._send_reply(interaction, Reply(GENERIC_ERROR))
            raise
        if reply is not None:
            await self._send_reply(interaction, reply)

    async def _create_from_command(self, interaction: discord.Interaction) -> None:
        try:
            reply = await self._controller.create_group(
                _actor_from(interaction),
                str(interaction.channel_id) if interaction.channel_id else None,
                str(interaction.guild_id) if interaction.guild_id else None,
                require_admin=True,
            )
        except SelectionRejected as exc:
            reply = Reply(str(exc))
        await self._send_reply(interaction, reply)

    async def _publish_panel(
        self, interaction: discord.Interaction, channel: discord.TextChannel
    ) -> None:
        guild_id = str(interaction.guild_id) if interaction.guild_id else ""
        if not await self._permissions.is_admin(str(interaction.user.id), guild_id):
            await self._send_reply(interaction, Reply(ADMIN_ONLY))
            return
        try:
            await channel.send(embed=build_panel_embed(), view=build_panel_view())
        except discord.HTTPException as exc:
            self._progress.warning(f"Posting the panel to #{channel} failed (status {exc.status}).")
            await self._send_reply(interaction, Reply("Could not post in that channel."))
            return
        self._progress.step(f"Group-finder panel published in #{channel}.")
        await self._send_reply(interaction, Reply("Group-finder panel published."))

    async def _send_reply(self, interaction: discord.Interaction, reply: Reply) -> None:
        kwargs: Dict[str, Any] = {}
        if reply.prompt is not None:
            kwargs["view"] = build_prompt_view(reply.prompt)
        try:
            if interaction.response.is_done():
                await interaction.followup.send(reply.content, ephemeral=True, **kwargs)
            elif reply.update:
                await interaction.response.edit_message(content=reply.content, view=kwargs.get("view"))
            else:
                await interaction.response.send_message(reply.content, ephemeral=True, **kwargs)
        except discord.HTTPException as exc:
            self._progress.warning(f"Could not answer interaction (status {exc.status}).")


class LfgBot:
    """Public facade that wires storage, notifications and the client together."""

    def __init__(
        self,
        config: BotConfig,
        progress: Optional[ProgressPrinter] = None,
        store: Optional[GroupStore] = None,
        notifier: Optional[WebhookNotifier] = None,
    ) -> None:
        self._config = config
        self._progress = progress or ProgressPrinter(verbose=config.verbose)
        self._store = store or SQLiteGroupStore(config.storage.path)
        self._notifier = notifier
        self._client = LfgClient(config, self._store, self._progress, notifier)

    @property
    def client(self) -> LfgClient:
        return self._client

    async def run(self) -> None:
        try:
            await self._authenticate()
            await self._client.connect(reconnect=True)
        finally:
            try:
                await self._client.close()
            finally:
                if self._notifier:
                    await self._notifier.close()

    async def _authenticate(self) -> None:
        self._progress.step("Authenticating with Discord...")
        try:
            await self._client.login(self._config.token)
        except discord.LoginFailure as exc:
            raise AuthenticationError(
                "Discord rejected the provided token. Please verify it and try again."
            ) from exc
        except discord.HTTPException as exc:
            raise self._build_authentication_error(exc) from exc

    @staticmethod
    def _build_authentication_error(exc: discord.HTTPException) -> AuthenticationError:
        status = exc.status
        if status == 401:
            message = "Discord rejected the provided token. Please verify it and try again."
        elif status == 403:
            message = "Discord denied the login attempt for this bot."
        elif status == 429:
            message = "Discord is rate limiting logins. Please try again later."
        else:
            detail = (exc.text or "").strip()
            if detail:
                message = f"Failed to authenticate with Discord (HTTP {status}): {detail}"
            else:
                message = f"Failed to authenticate with Discord (HTTP {status})."
        return AuthenticationError(message)
