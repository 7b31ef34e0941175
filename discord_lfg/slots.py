"""Slot allocation rules for a five-player group.

Everything here is synchronous and free of I/O. Mutators never reject:
callers validate eligibility before claiming or releasing a slot.
"""

from __future__ import annotations

from typing import Collection, List, Optional, Tuple

from .models import DPS_ORDER, SLOT_ORDER, GroupState, RoleFamily, SlotAssignment, SlotKey


def is_occupant(state: GroupState, user_id: str) -> bool:
    return slot_of(state, user_id) is not None


def slot_of(state: GroupState, user_id: str) -> Optional[SlotKey]:
    for slot_key in SLOT_ORDER:
        assignment = state.slots[slot_key]
        if assignment is not None and assignment.user_id == user_id:
            return slot_key
    return None


def candidate_slots(role: RoleFamily) -> Tuple[SlotKey, ...]:
    if role is RoleFamily.TANK:
        return (SlotKey.TANK,)
    if role is RoleFamily.HEALER:
        return (SlotKey.HEALER,)
    return DPS_ORDER


def next_free_slot(
    state: GroupState,
    role: RoleFamily,
    exclude: Collection[SlotKey] = (),
) -> Optional[SlotKey]:
    """Return the first empty slot for ``role`` in fixed order, skipping ``exclude``."""
    for slot_key in candidate_slots(role):
        if slot_key in exclude:
            continue
        if state.slots[slot_key] is None:
            return slot_key
    return None


def is_complete(state: GroupState) -> bool:
    return all(state.slots[slot_key] is not None for slot_key in SLOT_ORDER)


def refresh_completion(state: GroupState) -> bool:
    state.completed = is_complete(state)
    return state.completed


def claim(state: GroupState, slot_key: SlotKey, assignment: SlotAssignment) -> None:
    state.slots[slot_key] = assignment
    refresh_completion(state)


def release(state: GroupState, slot_key: SlotKey) -> Optional[SlotAssignment]:
    """Empty ``slot_key`` and drop any pending selection of its former occupant."""
    assignment = state.slots[slot_key]
    state.slots[slot_key] = None
    if assignment is not None:
        state.pending_by_user.pop(assignment.user_id, None)
    refresh_completion(state)
    return assignment


def occupied_slots(state: GroupState) -> List[Tuple[SlotKey, SlotAssignment]]:
    occupied: List[Tuple[SlotKey, SlotAssignment]] = []
    for slot_key in SLOT_ORDER:
        assignment = state.slots[slot_key]
        if assignment is not None:
            occupied.append((slot_key, assignment))
    return occupied
