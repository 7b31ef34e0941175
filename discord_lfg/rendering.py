from __future__ import annotations

from typing import Optional

import discord

from .controller import Prompt, PromptKind
from .models import (
    CLASS_OPTIONS,
    LEVEL_MAX,
    LEVEL_MIN,
    ROLE_LABELS,
    SLOT_LABELS,
    SLOT_ORDER,
    GroupAction,
    GroupState,
    RoleFamily,
    SlotAssignment,
)
from .utils import (
    action_button_id,
    class_select_id,
    kick_select_id,
    level_select_id,
    role_button_id,
)

FORMING_COLOUR = discord.Colour(0x6366F1)
COMPLETE_COLOUR = discord.Colour(0x22C55E)


def format_slot(assignment: Optional[SlotAssignment]) -> str:
    if assignment is None:
        return "Open"
    status = "confirmed" if assignment.confirmed else "not confirmed"
    return f"<@{assignment.user_id}> - {assignment.wow_class} • level {assignment.level} ({status})"


def group_status(state: GroupState) -> str:
    if state.completed:
        return "Group complete"
    if state.locked:
        return "Group locked"
    return "Forming"


def build_group_embed(state: GroupState) -> discord.Embed:
    embed = discord.Embed(
        title="Five-player group",
        description="Pick your role with the buttons, then your class and level.\nOne player per slot.",
        colour=COMPLETE_COLOUR if state.completed else FORMING_COLOUR,
        timestamp=discord.utils.utcnow(),
    )
    for slot_key in SLOT_ORDER:
        embed.add_field(name=SLOT_LABELS[slot_key], value=format_slot(state.slots[slot_key]), inline=False)
    embed.add_field(name="Creator", value=f"<@{state.creator_id}>", inline=True)
    embed.add_field(name="Players", value=f"{state.filled_count}/5", inline=True)
    embed.add_field(name="Status", value=group_status(state), inline=False)
    return embed


def build_group_view(state: GroupState) -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    joining_closed = state.completed or state.locked
    for role, style in (
        (RoleFamily.TANK, discord.ButtonStyle.primary),
        (RoleFamily.HEALER, discord.ButtonStyle.success),
        (RoleFamily.DPS, discord.ButtonStyle.secondary),
    ):
        view.add_item(
            discord.ui.Button(
                label=ROLE_LABELS[role],
                style=style,
                custom_id=role_button_id(role),
                disabled=joining_closed,
                row=0,
            )
        )

    lock_action = GroupAction.UNLOCK if state.locked else GroupAction.LOCK
    for action, label, style in (
        (GroupAction.LEAVE, "Leave", discord.ButtonStyle.danger),
        (GroupAction.CONFIRM, "Confirm", discord.ButtonStyle.success),
        (lock_action, lock_action.value.capitalize(), discord.ButtonStyle.secondary),
        (GroupAction.KICK, "Kick", discord.ButtonStyle.primary),
        (GroupAction.DELETE, "Delete group", discord.ButtonStyle.danger),
    ):
        view.add_item(
            discord.ui.Button(label=label, style=style, custom_id=action_button_id(action), row=1)
        )
    return view


def build_panel_embed() -> discord.Embed:
    return discord.Embed(
        title="Looking for group",
        description="Press \"Create group\" to open a new five-player group in this channel.",
        colour=FORMING_COLOUR,
    )


def build_panel_view() -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    view.add_item(
        discord.ui.Button(
            label="Create group",
            style=discord.ButtonStyle.success,
            custom_id=action_button_id(GroupAction.CREATE),
        )
    )
    return view


def _select(custom_id: str, placeholder: str, options: list) -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    view.add_item(
        discord.ui.Select(
            custom_id=custom_id,
            placeholder=placeholder,
            min_values=1,
            max_values=1,
            options=options,
        )
    )
    return view


def build_prompt_view(prompt: Prompt) -> discord.ui.View:
    if prompt.kind is PromptKind.CLASS:
        return _select(
            class_select_id(prompt.group_id, prompt.role),
            f"Pick your class for {ROLE_LABELS[prompt.role]}",
            [discord.SelectOption(label=name, value=name) for name in CLASS_OPTIONS[prompt.role]],
        )
    if prompt.kind is PromptKind.LEVEL:
        return _select(
            level_select_id(prompt.group_id),
            f"Pick your level ({LEVEL_MIN}-{LEVEL_MAX})",
            [
                discord.SelectOption(label=f"Level {level}", value=str(level))
                for level in range(LEVEL_MIN, LEVEL_MAX + 1)
            ],
        )
    return _select(
        kick_select_id(prompt.group_id),
        "Pick who to kick",
        [discord.SelectOption(label=label[:100], value=slot_key.value) for slot_key, label in prompt.options],
    )
