"""Tests for the role -> class -> level wizard."""

import pytest

from discord_lfg import pending, slots
from discord_lfg.errors import SelectionRejected, StaleReservation
from discord_lfg.models import (
    PENDING_TTL_SECONDS,
    SLOT_ORDER,
    GroupState,
    RoleFamily,
    SlotAssignment,
    SlotKey,
    WizardStep,
)

NOW = 1_000_000.0


@pytest.fixture
def state() -> GroupState:
    return GroupState(id="1", channel_id="2", guild_id="3", creator_id="owner")


def _assignment(user_id: str) -> SlotAssignment:
    return SlotAssignment(user_id=user_id, user_tag=user_id, wow_class="Rogue", level=60)


def _at_level_step(state: GroupState, user_id: str, role: RoleFamily, wow_class: str) -> None:
    pending.start_selection(state, user_id, role, NOW)
    pending.choose_class(state, user_id, role, wow_class, NOW)


class TestStartSelection:
    def test_creates_pending_awaiting_class(self, state: GroupState) -> None:
        selection = pending.start_selection(state, "u1", RoleFamily.TANK, NOW)

        assert selection.reserved_slot is SlotKey.TANK
        assert selection.step is WizardStep.AWAITING_CLASS
        assert selection.created_at == NOW
        assert selection.wow_class is None
        assert state.pending_by_user["u1"] is selection
        assert state.slots[SlotKey.TANK] is None

    def test_locked_group_rejects(self, state: GroupState) -> None:
        state.locked = True
        with pytest.raises(SelectionRejected, match="locked"):
            pending.start_selection(state, "u1", RoleFamily.TANK, NOW)
        assert state.pending_by_user == {}

    def test_complete_group_rejects(self, state: GroupState) -> None:
        for index, slot_key in enumerate(SLOT_ORDER):
            slots.claim(state, slot_key, _assignment(f"u{index}"))
        with pytest.raises(SelectionRejected, match="already complete"):
            pending.start_selection(state, "late", RoleFamily.DPS, NOW)

    def test_occupant_rejects(self, state: GroupState) -> None:
        slots.claim(state, SlotKey.HEALER, _assignment("u1"))
        with pytest.raises(SelectionRejected, match="already in this group"):
            pending.start_selection(state, "u1", RoleFamily.DPS, NOW)

    def test_full_role_rejects(self, state: GroupState) -> None:
        slots.claim(state, SlotKey.TANK, _assignment("u1"))
        with pytest.raises(SelectionRejected, match="role is already complete"):
            pending.start_selection(state, "u2", RoleFamily.TANK, NOW)

    def test_restart_replaces_previous_selection(self, state: GroupState) -> None:
        pending.start_selection(state, "u1", RoleFamily.TANK, NOW)
        pending.start_selection(state, "u1", RoleFamily.HEALER, NOW + 5)

        assert len(state.pending_by_user) == 1
        assert state.pending_by_user["u1"].role is RoleFamily.HEALER
        assert state.pending_by_user["u1"].reserved_slot is SlotKey.HEALER

    def test_concurrent_dps_clicks_reserve_distinct_slots(self, state: GroupState) -> None:
        first = pending.start_selection(state, "u1", RoleFamily.DPS, NOW)
        second = pending.start_selection(state, "u2", RoleFamily.DPS, NOW + 1)

        assert first.reserved_slot is SlotKey.DPS1
        assert second.reserved_slot is SlotKey.DPS2

    def test_restart_does_not_count_own_reservation(self, state: GroupState) -> None:
        pending.start_selection(state, "u1", RoleFamily.DPS, NOW)
        again = pending.start_selection(state, "u1", RoleFamily.DPS, NOW + 1)
        assert again.reserved_slot is SlotKey.DPS1

    def test_shares_lowest_slot_when_all_are_reserved(self, state: GroupState) -> None:
        pending.start_selection(state, "u1", RoleFamily.TANK, NOW)
        second = pending.start_selection(state, "u2", RoleFamily.TANK, NOW)
        assert second.reserved_slot is SlotKey.TANK

    def test_expired_reservations_are_ignored(self, state: GroupState) -> None:
        pending.start_selection(state, "u1", RoleFamily.DPS, NOW)
        later = pending.start_selection(state, "u2", RoleFamily.DPS, NOW + PENDING_TTL_SECONDS)
        assert later.reserved_slot is SlotKey.DPS1


class TestChooseClass:
    def test_advances_to_level_step(self, state: GroupState) -> None:
        pending.start_selection(state, "u1", RoleFamily.TANK, NOW)
        selection = pending.choose_class(state, "u1", RoleFamily.TANK, "Warrior (Protection)", NOW)

        assert selection.step is WizardStep.AWAITING_LEVEL
        assert selection.wow_class == "Warrior (Protection)"

    def test_without_pending_rejects(self, state: GroupState) -> None:
        with pytest.raises(SelectionRejected, match="expired"):
            pending.choose_class(state, "u1", RoleFamily.TANK, "Warrior (Protection)", NOW)

    def test_class_from_another_role_family_rejects(self, state: GroupState) -> None:
        pending.start_selection(state, "u1", RoleFamily.TANK, NOW)
        with pytest.raises(SelectionRejected, match="Invalid class"):
            pending.choose_class(state, "u1", RoleFamily.TANK, "Mage", NOW)
        assert state.pending_by_user["u1"].step is WizardStep.AWAITING_CLASS

    def test_role_mismatch_rejects_without_mutation(self, state: GroupState) -> None:
        pending.start_selection(state, "u1", RoleFamily.TANK, NOW)
        with pytest.raises(SelectionRejected, match="does not match"):
            pending.choose_class(state, "u1", RoleFamily.DPS, "Mage", NOW)
        assert state.pending_by_user["u1"].wow_class is None

    def test_missing_value_rejects(self, state: GroupState) -> None:
        pending.start_selection(state, "u1", RoleFamily.DPS, NOW)
        with pytest.raises(SelectionRejected, match="Could not read"):
            pending.choose_class(state, "u1", RoleFamily.DPS, None, NOW)

    def test_second_class_pick_rejects(self, state: GroupState) -> None:
        _at_level_step(state, "u1", RoleFamily.DPS, "Mage")
        with pytest.raises(SelectionRejected, match="expired"):
            pending.choose_class(state, "u1", RoleFamily.DPS, "Rogue", NOW)

    def test_locked_group_rejects(self, state: GroupState) -> None:
        pending.start_selection(state, "u1", RoleFamily.DPS, NOW)
        state.locked = True
        with pytest.raises(SelectionRejected, match="locked"):
            pending.choose_class(state, "u1", RoleFamily.DPS, "Mage", NOW)

    def test_expired_selection_is_dropped(self, state: GroupState) -> None:
        pending.start_selection(state, "u1", RoleFamily.DPS, NOW)
        with pytest.raises(SelectionRejected, match="expired"):
            pending.choose_class(state, "u1", RoleFamily.DPS, "Mage", NOW + PENDING_TTL_SECONDS)
        assert "u1" not in state.pending_by_user


class TestChooseLevel:
    @pytest.mark.parametrize("level", ["50", "70"])
    def test_boundary_levels_are_accepted(self, state: GroupState, level: str) -> None:
        _at_level_step(state, "u1", RoleFamily.HEALER, "Paladin (Holy)")

        slot_key = pending.choose_level(state, "u1", "u1#0001", level, NOW)

        assignment = state.slots[slot_key]
        assert slot_key is SlotKey.HEALER
        assert assignment.level == int(level)
        assert assignment.wow_class == "Paladin (Holy)"
        assert assignment.confirmed is False
        assert "u1" not in state.pending_by_user

    @pytest.mark.parametrize("level", ["49", "71", "sixty", "", None])
    def test_out_of_range_levels_are_rejected(self, state: GroupState, level) -> None:
        _at_level_step(state, "u1", RoleFamily.HEALER, "Paladin (Holy)")

        with pytest.raises(SelectionRejected, match="Invalid level"):
            pending.choose_level(state, "u1", "u1#0001", level, NOW)

        assert state.slots[SlotKey.HEALER] is None
        assert state.pending_by_user["u1"].step is WizardStep.AWAITING_LEVEL

    def test_requires_class_step_first(self, state: GroupState) -> None:
        pending.start_selection(state, "u1", RoleFamily.HEALER, NOW)
        with pytest.raises(SelectionRejected, match="expired"):
            pending.choose_level(state, "u1", "u1#0001", "60", NOW)

    def test_slot_taken_meanwhile_discards_selection(self, state: GroupState) -> None:
        _at_level_step(state, "u1", RoleFamily.TANK, "Druid (Feral)")
        other = _assignment("u2")
        slots.claim(state, SlotKey.TANK, other)

        with pytest.raises(StaleReservation, match="already taken"):
            pending.choose_level(state, "u1", "u1#0001", "60", NOW)

        assert "u1" not in state.pending_by_user
        assert state.slots[SlotKey.TANK] is other

    def test_first_commit_wins_shared_reservation(self, state: GroupState) -> None:
        _at_level_step(state, "u1", RoleFamily.TANK, "Druid (Feral)")
        _at_level_step(state, "u2", RoleFamily.TANK, "Warrior (Protection)")

        pending.choose_level(state, "u2", "u2#0002", "62", NOW)
        with pytest.raises(StaleReservation):
            pending.choose_level(state, "u1", "u1#0001", "60", NOW)

        assert state.slots[SlotKey.TANK].user_id == "u2"

    def test_locked_group_rejects(self, state: GroupState) -> None:
        _at_level_step(state, "u1", RoleFamily.TANK, "Druid (Feral)")
        state.locked = True
        with pytest.raises(SelectionRejected, match="locked"):
            pending.choose_level(state, "u1", "u1#0001", "60", NOW)


class TestSweepExpired:
    def test_evicts_only_expired_entries(self, state: GroupState) -> None:
        other = GroupState(id="9", channel_id="2", guild_id="3", creator_id="owner")
        pending.start_selection(state, "old", RoleFamily.TANK, NOW)
        pending.start_selection(state, "fresh", RoleFamily.DPS, NOW + 600)
        pending.start_selection(other, "old2", RoleFamily.HEALER, NOW)

        evicted = pending.sweep_expired([state, other], NOW + PENDING_TTL_SECONDS)

        assert evicted == 2
        assert list(state.pending_by_user) == ["fresh"]
        assert other.pending_by_user == {}
