"""Role -> class -> level sign-up wizard.

A user's slot is only reserved softly (recorded in ``pending_by_user``) until
both class and level are chosen. The reserved slot is checked again at commit
time; whoever commits first wins it.
"""

from __future__ import annotations

from typing import Iterable, Optional, Set

from . import slots
from .errors import SelectionRejected, StaleReservation
from .models import (
    CLASS_OPTIONS,
    LEVEL_MAX,
    LEVEL_MIN,
    PENDING_TTL_SECONDS,
    GroupState,
    PendingSelection,
    RoleFamily,
    SlotAssignment,
    SlotKey,
    WizardStep,
)

GROUP_LOCKED = "This group is locked."
GROUP_COMPLETE = "This group is already complete."
ALREADY_IN_GROUP = "You are already in this group."
ROLE_COMPLETE = "That role is already complete in this group."
SELECTION_EXPIRED = "Your selection expired. Pick a role again with the buttons."
ROLE_MISMATCH = "That selection does not match the role you picked. Try again."
CLASS_UNREADABLE = "Could not read your class. Try again."
CLASS_INVALID = "Invalid class for that role."
LEVEL_INVALID = f"Invalid level. Pick a level between {LEVEL_MIN} and {LEVEL_MAX}."
SLOT_TAKEN = "That slot was already taken. Pick a role again."


def active_pending(
    state: GroupState,
    user_id: str,
    now: float,
    ttl: float = PENDING_TTL_SECONDS,
) -> Optional[PendingSelection]:
    """Return the user's pending selection, dropping it if it has expired."""
    pending = state.pending_by_user.get(user_id)
    if pending is None:
        return None
    if pending.is_expired(now, ttl):
        del state.pending_by_user[user_id]
        return None
    return pending


def _reserved_by_others(
    state: GroupState, user_id: str, now: float, ttl: float
) -> Set[SlotKey]:
    return {
        pending.reserved_slot
        for other_id, pending in state.pending_by_user.items()
        if other_id != user_id and not pending.is_expired(now, ttl)
    }


def start_selection(
    state: GroupState,
    user_id: str,
    role: RoleFamily,
    now: float,
    ttl: float = PENDING_TTL_SECONDS,
) -> PendingSelection:
    if state.locked:
        raise SelectionRejected(GROUP_LOCKED)
    if state.completed:
        raise SelectionRejected(GROUP_COMPLETE)
    if slots.is_occupant(state, user_id):
        raise SelectionRejected(ALREADY_IN_GROUP)

    # Prefer a slot nobody else is mid-wizard for; share one only when all are.
    reserved = _reserved_by_others(state, user_id, now, ttl)
    slot_key = slots.next_free_slot(state, role, exclude=reserved)
    if slot_key is None:
        slot_key = slots.next_free_slot(state, role)
    if slot_key is None:
        raise SelectionRejected(ROLE_COMPLETE)

    pending = PendingSelection(role=role, reserved_slot=slot_key, created_at=now)
    state.pending_by_user[user_id] = pending
    return pending


def choose_class(
    state: GroupState,
    user_id: str,
    role: RoleFamily,
    wow_class: Optional[str],
    now: float,
    ttl: float = PENDING_TTL_SECONDS,
) -> PendingSelection:
    if state.completed:
        raise SelectionRejected(GROUP_COMPLETE)
    if state.locked:
        raise SelectionRejected(GROUP_LOCKED)
    if slots.is_occupant(state, user_id):
        raise SelectionRejected(ALREADY_IN_GROUP)

    pending = active_pending(state, user_id, now, ttl)
    if pending is None or pending.step is not WizardStep.AWAITING_CLASS:
        raise SelectionRejected(SELECTION_EXPIRED)
    if pending.role is not role:
        raise SelectionRejected(ROLE_MISMATCH)
    if not wow_class:
        raise SelectionRejected(CLASS_UNREADABLE)
    if wow_class not in CLASS_OPTIONS[pending.role]:
        raise SelectionRejected(CLASS_INVALID)

    pending.wow_class = wow_class
    pending.step = WizardStep.AWAITING_LEVEL
    return pending


def parse_level(raw_level: Optional[str]) -> int:
    if raw_level is None:
        raise SelectionRejected(LEVEL_INVALID)
    try:
        level = int(str(raw_level).strip())
    except ValueError as exc:
        raise SelectionRejected(LEVEL_INVALID) from exc
    if level < LEVEL_MIN or level > LEVEL_MAX:
        raise SelectionRejected(LEVEL_INVALID)
    return level


def choose_level(
    state: GroupState,
    user_id: str,
    user_tag: str,
    raw_level: Optional[str],
    now: float,
    ttl: float = PENDING_TTL_SECONDS,
) -> SlotKey:
    """Commit the wizard into the reserved slot and return that slot."""
    if state.locked:
        raise SelectionRejected(GROUP_LOCKED)
    if slots.is_occupant(state, user_id):
        raise SelectionRejected(ALREADY_IN_GROUP)

    pending = active_pending(state, user_id, now, ttl)
    if (
        pending is None
        or pending.step is not WizardStep.AWAITING_LEVEL
        or not pending.wow_class
    ):
        raise SelectionRejected(SELECTION_EXPIRED)

    level = parse_level(raw_level)

    slot_key = pending.reserved_slot
    if state.slots[slot_key] is not None:
        del state.pending_by_user[user_id]
        raise StaleReservation(SLOT_TAKEN)

    slots.claim(
        state,
        slot_key,
        SlotAssignment(
            user_id=user_id,
            user_tag=user_tag,
            wow_class=pending.wow_class,
            level=level,
        ),
    )
    del state.pending_by_user[user_id]
    return slot_key


def sweep_expired(
    groups: Iterable[GroupState],
    now: float,
    ttl: float = PENDING_TTL_SECONDS,
) -> int:
    """Evict expired pending selections across ``groups``; return how many were dropped."""
    evicted = 0
    for state in groups:
        expired = [
            user_id
            for user_id, pending in state.pending_by_user.items()
            if pending.is_expired(now, ttl)
        ]
        for user_id in expired:
            del state.pending_by_user[user_id]
        evicted += len(expired)
    return evicted
