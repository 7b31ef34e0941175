from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigurationError
from .models import GroupAction, RoleFamily

CUSTOM_ID_PREFIX = "group"
SNOWFLAKE_REGEX = re.compile(r"\d{5,20}")

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "no", "n", "off"}


@dataclass(slots=True, frozen=True)
class CustomId:
    """Decoded component identifier."""

    kind: str
    group_id: Optional[str] = None
    role: Optional[RoleFamily] = None
    action: Optional[GroupAction] = None


def role_button_id(role: RoleFamily) -> str:
    return f"{CUSTOM_ID_PREFIX}:role:{role.value}"


def class_select_id(group_id: str, role: RoleFamily) -> str:
    return f"{CUSTOM_ID_PREFIX}:class:{group_id}:{role.value}"


def level_select_id(group_id: str) -> str:
    return f"{CUSTOM_ID_PREFIX}:level:{group_id}"


def kick_select_id(group_id: str) -> str:
    return f"{CUSTOM_ID_PREFIX}:kick:{group_id}"


def action_button_id(action: GroupAction) -> str:
    return f"{CUSTOM_ID_PREFIX}:action:{action.value}"


def is_group_custom_id(custom_id: Optional[str]) -> bool:
    return bool(custom_id) and custom_id.startswith(f"{CUSTOM_ID_PREFIX}:")


def _parse_role(raw: str) -> Optional[RoleFamily]:
    try:
        return RoleFamily(raw)
    except ValueError:
        return None


def parse_custom_id(custom_id: Optional[str]) -> Optional[CustomId]:
    """Decode a colon-delimited component identifier, or return ``None``."""
    if not is_group_custom_id(custom_id):
        return None
    parts = custom_id.split(":")
    kind = parts[1] if len(parts) > 1 else ""

    if kind == "role" and len(parts) == 3:
        role = _parse_role(parts[2])
        return CustomId(kind, role=role) if role else None

    if kind == "class" and len(parts) == 4 and parts[2]:
        role = _parse_role(parts[3])
        return CustomId(kind, group_id=parts[2], role=role) if role else None

    if kind in {"level", "kick"} and len(parts) == 3 and parts[2]:
        return CustomId(kind, group_id=parts[2])

    if kind == "action" and len(parts) == 3:
        try:
            action = GroupAction(parts[2])
        except ValueError:
            return None
        return CustomId(kind, action=action)

    return None


def parse_snowflake(raw: str, name: str) -> int:
    cleaned = raw.strip()
    if not SNOWFLAKE_REGEX.fullmatch(cleaned):
        raise ConfigurationError(f"{name} must be a numeric Discord ID.")
    return int(cleaned)


def parse_bool(raw: str, name: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be one of: true, false, yes, no, 1, 0.")


def parse_positive_number(raw: str, name: str) -> float:
    try:
        value = float(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number.") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be greater than zero.")
    return value
