from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


class SlotKey(str, Enum):
    TANK = "TANK"
    HEALER = "HEALER"
    DPS1 = "DPS1"
    DPS2 = "DPS2"
    DPS3 = "DPS3"


class RoleFamily(str, Enum):
    TANK = "TANK"
    HEALER = "HEALER"
    DPS = "DPS"


class WizardStep(str, Enum):
    AWAITING_CLASS = "AWAITING_CLASS"
    AWAITING_LEVEL = "AWAITING_LEVEL"


class GroupAction(str, Enum):
    CREATE = "create"
    LEAVE = "leave"
    CONFIRM = "confirm"
    LOCK = "lock"
    UNLOCK = "unlock"
    KICK = "kick"
    DELETE = "delete"


SLOT_ORDER: Tuple[SlotKey, ...] = (
    SlotKey.TANK,
    SlotKey.HEALER,
    SlotKey.DPS1,
    SlotKey.DPS2,
    SlotKey.DPS3,
)

DPS_ORDER: Tuple[SlotKey, ...] = (SlotKey.DPS1, SlotKey.DPS2, SlotKey.DPS3)

SLOT_LABELS: Dict[SlotKey, str] = {
    SlotKey.TANK: "Tank",
    SlotKey.HEALER: "Healer",
    SlotKey.DPS1: "DPS 1",
    SlotKey.DPS2: "DPS 2",
    SlotKey.DPS3: "DPS 3",
}

ROLE_LABELS: Dict[RoleFamily, str] = {
    RoleFamily.TANK: "Tank",
    RoleFamily.HEALER: "Healer",
    RoleFamily.DPS: "DPS",
}

CLASS_OPTIONS: Dict[RoleFamily, Tuple[str, ...]] = {
    RoleFamily.TANK: (
        "Warrior (Protection)",
        "Paladin (Protection)",
        "Druid (Feral)",
    ),
    RoleFamily.HEALER: (
        "Priest (Holy/Discipline)",
        "Paladin (Holy)",
        "Druid (Restoration)",
        "Shaman (Restoration)",
    ),
    RoleFamily.DPS: (
        "Warrior (Arms/Fury)",
        "Rogue",
        "Mage",
        "Warlock",
        "Hunter",
        "Shaman (Enhancement/Elemental)",
        "Druid (Balance/Feral)",
        "Paladin (Retribution)",
        "Priest (Shadow)",
    ),
}

LEVEL_MIN = 50
LEVEL_MAX = 70
PENDING_TTL_SECONDS = 15 * 60


@dataclass(slots=True)
class SlotAssignment:
    """A filled slot."""

    user_id: str
    user_tag: str
    wow_class: str
    level: int
    confirmed: bool = False


@dataclass(slots=True)
class PendingSelection:
    """In-flight role -> class -> level wizard state for one user."""

    role: RoleFamily
    reserved_slot: SlotKey
    created_at: float
    step: WizardStep = WizardStep.AWAITING_CLASS
    wow_class: Optional[str] = None

    def is_expired(self, now: float, ttl: float = PENDING_TTL_SECONDS) -> bool:
        return now - self.created_at >= ttl


def _empty_slots() -> Dict[SlotKey, Optional[SlotAssignment]]:
    return {key: None for key in SLOT_ORDER}


@dataclass(slots=True)
class GroupState:
    """Live state of one five-player group, keyed by its message id."""

    id: str
    channel_id: str
    guild_id: str
    creator_id: str
    slots: Dict[SlotKey, Optional[SlotAssignment]] = field(default_factory=_empty_slots)
    completed: bool = False
    locked: bool = False
    pending_by_user: Dict[str, PendingSelection] = field(default_factory=dict)

    @property
    def filled_count(self) -> int:
        return sum(1 for assignment in self.slots.values() if assignment is not None)
