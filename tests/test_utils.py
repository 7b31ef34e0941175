"""Tests for component identifiers and value parsing."""

import pytest

from discord_lfg.errors import ConfigurationError
from discord_lfg.models import GroupAction, RoleFamily
from discord_lfg.utils import (
    action_button_id,
    class_select_id,
    is_group_custom_id,
    kick_select_id,
    level_select_id,
    parse_bool,
    parse_custom_id,
    parse_positive_number,
    parse_snowflake,
    role_button_id,
)


class TestCustomIds:
    def test_builders_use_colon_encoding(self) -> None:
        assert role_button_id(RoleFamily.DPS) == "group:role:DPS"
        assert class_select_id("42", RoleFamily.TANK) == "group:class:42:TANK"
        assert level_select_id("42") == "group:level:42"
        assert kick_select_id("42") == "group:kick:42"
        assert action_button_id(GroupAction.UNLOCK) == "group:action:unlock"

    def test_parse_role_button(self) -> None:
        parsed = parse_custom_id("group:role:HEALER")
        assert parsed.kind == "role"
        assert parsed.role is RoleFamily.HEALER
        assert parsed.group_id is None

    def test_parse_class_select(self) -> None:
        parsed = parse_custom_id("group:class:42:DPS")
        assert (parsed.kind, parsed.group_id, parsed.role) == ("class", "42", RoleFamily.DPS)

    @pytest.mark.parametrize("kind", ["level", "kick"])
    def test_parse_group_scoped_selects(self, kind: str) -> None:
        parsed = parse_custom_id(f"group:{kind}:42")
        assert (parsed.kind, parsed.group_id) == (kind, "42")

    def test_parse_every_action(self) -> None:
        for action in GroupAction:
            assert parse_custom_id(f"group:action:{action.value}").action is action

    @pytest.mark.parametrize(
        "custom_id",
        [
            None,
            "",
            "tbc:role:TANK",
            "group:role:BARD",
            "group:role:TANK:extra",
            "group:class:42",
            "group:class::TANK",
            "group:level:",
            "group:action:dance",
            "group:unknown:1",
        ],
    )
    def test_rejects_malformed_ids(self, custom_id) -> None:
        assert parse_custom_id(custom_id) is None

    def test_is_group_custom_id(self) -> None:
        assert is_group_custom_id("group:level:1")
        assert not is_group_custom_id("rolestats:channel:1")
        assert not is_group_custom_id(None)


class TestValueParsing:
    def test_parse_snowflake(self) -> None:
        assert parse_snowflake(" 123456789012345678 ", "DISCORD_GUILD_ID") == 123456789012345678
        with pytest.raises(ConfigurationError, match="DISCORD_GUILD_ID"):
            parse_snowflake("my-guild", "DISCORD_GUILD_ID")

    @pytest.mark.parametrize("raw,expected", [("yes", True), ("ON", True), ("0", False), ("false", False)])
    def test_parse_bool(self, raw: str, expected: bool) -> None:
        assert parse_bool(raw, "FLAG") is expected

    def test_parse_bool_rejects_other_words(self) -> None:
        with pytest.raises(ConfigurationError):
            parse_bool("maybe", "FLAG")

    def test_parse_positive_number(self) -> None:
        assert parse_positive_number("2.5", "N") == 2.5
        with pytest.raises(ConfigurationError, match="greater than zero"):
            parse_positive_number("0", "N")
        with pytest.raises(ConfigurationError, match="must be a number"):
            parse_positive_number("soon", "N")
