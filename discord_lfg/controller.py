"""Routes group interactions and applies their effects.

Every handler performs its precondition checks and its in-memory mutation
without awaiting in between, so a handler never acts on a state another
handler changed underneath it. The one await allowed before a mutation is the
administrator lookup, after which the group is looked up again. Persistence
and re-rendering happen after the mutation has landed; the in-memory registry
is the source of truth.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

from . import pending, slots
from .errors import LfgBotError, PersistenceError, SelectionRejected
from .gateway import MessagingGateway, PermissionProvider, RenderResult
from .models import (
    LEVEL_MAX,
    LEVEL_MIN,
    PENDING_TTL_SECONDS,
    SLOT_LABELS,
    GroupAction,
    GroupState,
    RoleFamily,
    SlotKey,
)
from .progress import ProgressPrinter
from .registry import GroupRegistry
from .storage import GroupStore
from .utils import parse_custom_id
from .webhook import GroupCompletedNotification, WebhookNotifier

GROUP_GONE = "This group is no longer available."
GUILD_ONLY = "This only works inside a server."
ADMIN_ONLY = "Only administrators can use this command."
CHANNEL_UNAVAILABLE = "Could not find the channel."
NOT_IN_GROUP = "You are not in this group."
ALREADY_CONFIRMED = "You are already confirmed."
MANAGERS_ONLY = "Only the group creator or an administrator can use this action."
CREATOR_ONLY_KICK = "Only the group creator can kick players."
NOTHING_TO_KICK = "There are no players to kick."
INVALID_SELECTION = "Invalid selection."
NOT_DURABLE = " Warning: this change may not have been saved."


@dataclass(slots=True, frozen=True)
class Actor:
    user_id: str
    tag: str


@dataclass(slots=True)
class InteractionEvent:
    """A component interaction, stripped of platform types."""

    actor: Actor
    custom_id: str
    values: List[str] = field(default_factory=list)
    message_id: Optional[str] = None
    channel_id: Optional[str] = None
    guild_id: Optional[str] = None


class PromptKind(Enum):
    CLASS = "class"
    LEVEL = "level"
    KICK = "kick"


@dataclass(slots=True)
class Prompt:
    kind: PromptKind
    group_id: str
    role: Optional[RoleFamily] = None
    options: List[Tuple[SlotKey, str]] = field(default_factory=list)


@dataclass(slots=True)
class Reply:
    """Private response to the acting user.

    ``update`` replaces the prompt message the interaction came from instead
    of sending a new one.
    """

    content: str
    prompt: Optional[Prompt] = None
    update: bool = False


@dataclass(slots=True)
class CommitResult:
    durable: bool
    render: RenderResult


class GroupController:
    def __init__(
        self,
        registry: GroupRegistry,
        store: GroupStore,
        gateway: MessagingGateway,
        permissions: PermissionProvider,
        progress: Optional[ProgressPrinter] = None,
        notifier: Optional[WebhookNotifier] = None,
        *,
        pending_ttl: float = PENDING_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._registry = registry
        self._store = store
        self._gateway = gateway
        self._permissions = permissions
        self._progress = progress or ProgressPrinter()
        self._notifier = notifier
        self._pending_ttl = pending_ttl
        self._clock = clock

    @property
    def registry(self) -> GroupRegistry:
        return self._registry

    async def dispatch(self, event: InteractionEvent) -> Optional[Reply]:
        """Handle a component interaction; ``None`` means it was not ours."""
        parsed = parse_custom_id(event.custom_id)
        if parsed is None:
            return None

        value = event.values[0] if event.values else None
        try:
            if parsed.kind == "role":
                return await self.select_role(event.actor, event.message_id, parsed.role)
            if parsed.kind == "class":
                return await self.select_class(event.actor, parsed.group_id, parsed.role, value)
            if parsed.kind == "level":
                return await self.select_level(event.actor, parsed.group_id, value)
            if parsed.kind == "kick":
                return await self.kick_member(event.actor, parsed.group_id, value)
            if parsed.action is GroupAction.CREATE:
                return await self.create_group(event.actor, event.channel_id, event.guild_id)
            return await self.run_action(event.actor, event.message_id, parsed.action)
        except SelectionRejected as exc:
            return Reply(str(exc))

    def _require_group(self, group_id: Optional[str]) -> GroupState:
        state = self._registry.get(group_id)
        if state is None:
            raise SelectionRejected(GROUP_GONE)
        return state

    async def create_group(
        self,
        actor: Actor,
        channel_id: Optional[str],
        guild_id: Optional[str],
        require_admin: bool = False,
    ) -> Reply:
        if not channel_id or not guild_id:
            raise SelectionRejected(GUILD_ONLY)
        if require_admin and not await self._permissions.is_admin(actor.user_id, guild_id):
            raise SelectionRejected(ADMIN_ONLY)

        draft = GroupState(id="0", channel_id=channel_id, guild_id=guild_id, creator_id=actor.user_id)
        message_id = await self._gateway.publish_group(channel_id, draft)
        if message_id is None:
            raise SelectionRejected(CHANNEL_UNAVAILABLE)

        state = GroupState(
            id=message_id,
            channel_id=channel_id,
            guild_id=guild_id,
            creator_id=actor.user_id,
        )
        self._registry.set(state)
        durable = self._persist(state)
        self._progress.debug(f"Group {state.id} created by {actor.tag} in channel {channel_id}.")
        return Reply(self._durability("Group created.", durable))

    async def select_role(
        self, actor: Actor, group_id: Optional[str], role: Optional[RoleFamily]
    ) -> Reply:
        state = self._require_group(group_id)
        if role is None:
            raise SelectionRejected(INVALID_SELECTION)
        selection = pending.start_selection(
            state, actor.user_id, role, self._clock(), self._pending_ttl
        )
        self._progress.debug(
            f"{actor.tag} reserved {selection.reserved_slot.value} in group {state.id}."
        )
        return Reply("Pick your class:", prompt=Prompt(PromptKind.CLASS, state.id, role=role))

    async def select_class(
        self,
        actor: Actor,
        group_id: Optional[str],
        role: Optional[RoleFamily],
        wow_class: Optional[str],
    ) -> Reply:
        state = self._require_group(group_id)
        if role is None:
            raise SelectionRejected(INVALID_SELECTION)
        pending.choose_class(
            state, actor.user_id, role, wow_class, self._clock(), self._pending_ttl
        )
        return Reply(
            f"Pick your level ({LEVEL_MIN}-{LEVEL_MAX}):",
            prompt=Prompt(PromptKind.LEVEL, state.id),
            update=True,
        )

    async def select_level(
        self, actor: Actor, group_id: Optional[str], raw_level: Optional[str]
    ) -> Reply:
        state = self._require_group(group_id)
        was_complete = state.completed
        slot_key = pending.choose_level(
            state, actor.user_id, actor.tag, raw_level, self._clock(), self._pending_ttl
        )
        self._progress.debug(f"{actor.tag} joined group {state.id} as {slot_key.value}.")
        result = await self._commit(state)
        if state.completed and not was_complete:
            await self._notify_completed(state)
        return Reply(self._durability("Done. You're in the group.", result.durable), update=True)

    async def run_action(
        self, actor: Actor, group_id: Optional[str], action: Optional[GroupAction]
    ) -> Reply:
        state = self._require_group(group_id)

        if action is GroupAction.LEAVE:
            return await self._leave(state, actor)
        if action is GroupAction.CONFIRM:
            return await self._confirm(state, actor)
        if action is GroupAction.KICK:
            return self._kick_prompt(state, actor)

        if action in (GroupAction.LOCK, GroupAction.UNLOCK):
            await self._authorize_manager(state, actor)
            state.locked = action is GroupAction.LOCK
            result = await self._commit(state)
            content = "Group locked." if state.locked else "Group unlocked."
            return Reply(self._durability(content, result.durable))

        if action is GroupAction.DELETE:
            await self._authorize_manager(state, actor)
            durable = await self._destroy(state)
            return Reply(self._durability("Group deleted.", durable))

        raise SelectionRejected(INVALID_SELECTION)

    async def kick_member(
        self, actor: Actor, group_id: Optional[str], raw_slot: Optional[str]
    ) -> Reply:
        state = self._require_group(group_id)
        if actor.user_id != state.creator_id:
            raise SelectionRejected(CREATOR_ONLY_KICK)
        try:
            slot_key = SlotKey(raw_slot)
        except ValueError as exc:
            raise SelectionRejected(INVALID_SELECTION) from exc
        if state.slots[slot_key] is None:
            raise SelectionRejected(INVALID_SELECTION)

        kicked = slots.release(state, slot_key)
        self._progress.debug(
            f"{actor.tag} kicked {kicked.user_tag} from {slot_key.value} in group {state.id}."
        )
        result = await self._commit(state)
        return Reply(self._durability("Player kicked.", result.durable), update=True)

    async def _leave(self, state: GroupState, actor: Actor) -> Reply:
        slot_key = slots.slot_of(state, actor.user_id)
        if slot_key is None:
            raise SelectionRejected(NOT_IN_GROUP)

        if actor.user_id == state.creator_id:
            durable = await self._destroy(state)
            return Reply(self._durability("Group deleted.", durable))

        slots.release(state, slot_key)
        result = await self._commit(state)
        return Reply(self._durability("You left the group.", result.durable))

    async def _confirm(self, state: GroupState, actor: Actor) -> Reply:
        slot_key = slots.slot_of(state, actor.user_id)
        if slot_key is None:
            raise SelectionRejected(NOT_IN_GROUP)
        assignment = state.slots[slot_key]
        if assignment.confirmed:
            raise SelectionRejected(ALREADY_CONFIRMED)

        assignment.confirmed = True
        result = await self._commit(state)
        return Reply(self._durability("Confirmed.", result.durable))

    def _kick_prompt(self, state: GroupState, actor: Actor) -> Reply:
        if actor.user_id != state.creator_id:
            raise SelectionRejected(CREATOR_ONLY_KICK)
        options = [
            (slot_key, f"{SLOT_LABELS[slot_key]} - {assignment.user_tag}")
            for slot_key, assignment in slots.occupied_slots(state)
        ]
        if not options:
            raise SelectionRejected(NOTHING_TO_KICK)
        return Reply(
            "Pick who to kick:",
            prompt=Prompt(PromptKind.KICK, state.id, options=options),
        )

    async def _authorize_manager(self, state: GroupState, actor: Actor) -> None:
        if actor.user_id == state.creator_id:
            return
        is_admin = await self._permissions.is_admin(actor.user_id, state.guild_id)
        # The group may have been deleted while the permission lookup was pending.
        if self._registry.get(state.id) is not state:
            raise SelectionRejected(GROUP_GONE)
        if not is_admin:
            raise SelectionRejected(MANAGERS_ONLY)

    def _persist(self, state: GroupState) -> bool:
        try:
            self._store.save_group(state)
        except PersistenceError as exc:
            self._progress.error(f"Group {state.id} was not saved: {exc}")
            return False
        return True

    async def _commit(self, state: GroupState) -> CommitResult:
        slots.refresh_completion(state)
        durable = self._persist(state)
        render = await self._gateway.render_group(state)
        if render is RenderResult.ORPHANED:
            self._registry.mark_orphaned(state.id)
            self._progress.warning(f"Group {state.id} could not be re-rendered; its message is gone.")
        elif render is RenderResult.FAILED:
            self._progress.warning(f"Group {state.id} was updated but its message was not refreshed.")
        return CommitResult(durable=durable, render=render)

    async def _destroy(self, state: GroupState) -> bool:
        self._registry.delete(state.id)
        durable = True
        try:
            self._store.delete_group(state.id)
        except PersistenceError as exc:
            self._progress.error(f"Group {state.id} was not removed from storage: {exc}")
            durable = False
        if await self._gateway.remove_group(state) is RenderResult.ORPHANED:
            self._progress.debug(f"Message for group {state.id} was already gone.")
        self._progress.debug(f"Group {state.id} deleted.")
        return durable

    async def _notify_completed(self, state: GroupState) -> None:
        self._progress.success(f"Group {state.id} is complete.")
        if self._notifier is None:
            return
        try:
            await self._notifier.notify(GroupCompletedNotification.from_state(state))
        except LfgBotError as exc:
            self._progress.warning(f"Completion webhook failed for group {state.id}: {exc}")

    @staticmethod
    def _durability(content: str, durable: bool) -> str:
        return content if durable else content + NOT_DURABLE

    def load_groups(self) -> List[GroupState]:
        states = self._store.load_all_groups()
        self._registry.seed(states)
        return states

    async def reconcile(self, purge: bool = True) -> List[GroupState]:
        """Re-render every registered group and return those whose message is gone.

        With ``purge`` the orphans are also dropped from the registry and the store.
        """
        orphans: List[GroupState] = []
        for state in self._registry:
            slots.refresh_completion(state)
            render = await self._gateway.render_group(state)
            if render is RenderResult.FAILED:
                self._progress.warning(f"Group {state.id} could not be checked; keeping it.")
            if render is not RenderResult.ORPHANED:
                continue
            orphans.append(state)
            if not purge:
                self._registry.mark_orphaned(state.id)
                continue
            self._registry.delete(state.id)
            try:
                self._store.delete_group(state.id)
            except PersistenceError as exc:
                self._progress.error(f"Orphaned group {state.id} was not purged: {exc}")
        return orphans

    def sweep_pending(self) -> int:
        evicted = pending.sweep_expired(self._registry, self._clock(), self._pending_ttl)
        if evicted:
            self._progress.debug(f"Evicted {evicted} expired pending selection(s).")
        return evicted
