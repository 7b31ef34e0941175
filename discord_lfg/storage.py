"""Durable storage for group records."""

from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from . import slots
from .errors import PersistenceError
from .models import SLOT_ORDER, GroupState, SlotAssignment, SlotKey


class GroupStore(ABC):
    """Key-value store of groups. Pending selections are never persisted."""

    @abstractmethod
    def save_group(self, state: GroupState) -> None:
        """Insert or update the group and all five of its slots."""

    @abstractmethod
    def delete_group(self, group_id: str) -> None:
        """Remove the group and its slots. Missing ids are ignored."""

    @abstractmethod
    def load_all_groups(self) -> List[GroupState]:
        """Return every stored group with an empty pending map."""


class SQLiteGroupStore(GroupStore):
    """SQLite-backed store that survives bot restarts.

    Attributes:
        path: Location of the database file
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._ensure_schema()

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        try:
            return sqlite3.connect(self._path)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not open group database at {self._path}: {exc}") from exc

    def _ensure_schema(self) -> None:
        if not self._path.parent.exists():
            self._path.parent.mkdir(parents=True)

        conn = self._connect()
        try:
            conn.execute("PRAGMA journal_mode = WAL")
            with conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS groups (
                        message_id TEXT PRIMARY KEY,
                        channel_id TEXT NOT NULL,
                        guild_id TEXT NOT NULL,
                        created_by_user_id TEXT NOT NULL,
                        completed INTEGER NOT NULL,
                        locked INTEGER NOT NULL
                    )
                """)
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS slots (
                        message_id TEXT NOT NULL,
                        slot_key TEXT NOT NULL,
                        user_id TEXT,
                        user_tag TEXT,
                        wow_class TEXT,
                        level INTEGER,
                        confirmed INTEGER,
                        PRIMARY KEY (message_id, slot_key)
                    )
                """)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not initialise group database: {exc}") from exc
        finally:
            conn.close()

    def save_group(self, state: GroupState) -> None:
        slot_rows = []
        for slot_key in SLOT_ORDER:
            assignment = state.slots[slot_key]
            slot_rows.append(
                (
                    state.id,
                    slot_key.value,
                    assignment.user_id if assignment else None,
                    assignment.user_tag if assignment else None,
                    assignment.wow_class if assignment else None,
                    assignment.level if assignment else None,
                    1 if assignment and assignment.confirmed else 0,
                )
            )

        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO groups (
                        message_id, channel_id, guild_id,
                        created_by_user_id, completed, locked
                    )
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(message_id) DO UPDATE SET
                        channel_id = excluded.channel_id,
                        guild_id = excluded.guild_id,
                        created_by_user_id = excluded.created_by_user_id,
                        completed = excluded.completed,
                        locked = excluded.locked
                    """,
                    (
                        state.id,
                        state.channel_id,
                        state.guild_id,
                        state.creator_id,
                        1 if state.completed else 0,
                        1 if state.locked else 0,
                    ),
                )
                conn.executemany(
                    """
                    INSERT INTO slots (
                        message_id, slot_key, user_id, user_tag,
                        wow_class, level, confirmed
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(message_id, slot_key) DO UPDATE SET
                        user_id = excluded.user_id,
                        user_tag = excluded.user_tag,
                        wow_class = excluded.wow_class,
                        level = excluded.level,
                        confirmed = excluded.confirmed
                    """,
                    slot_rows,
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not save group {state.id}: {exc}") from exc
        finally:
            conn.close()

    def delete_group(self, group_id: str) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute("DELETE FROM slots WHERE message_id = ?", (group_id,))
                conn.execute("DELETE FROM groups WHERE message_id = ?", (group_id,))
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not delete group {group_id}: {exc}") from exc
        finally:
            conn.close()

    def load_all_groups(self) -> List[GroupState]:
        conn = self._connect()
        try:
            group_rows = conn.execute(
                """
                SELECT message_id, channel_id, guild_id, created_by_user_id, locked
                FROM groups
                """
            ).fetchall()
            slot_rows = conn.execute(
                """
                SELECT message_id, slot_key, user_id, user_tag, wow_class, level, confirmed
                FROM slots
                """
            ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not load groups: {exc}") from exc
        finally:
            conn.close()

        assignments: Dict[str, Dict[SlotKey, Optional[SlotAssignment]]] = {}
        for message_id, slot_key, user_id, user_tag, wow_class, level, confirmed in slot_rows:
            try:
                key = SlotKey(slot_key)
            except ValueError:
                continue
            if user_id and user_tag and wow_class and level is not None:
                assignments.setdefault(message_id, {})[key] = SlotAssignment(
                    user_id=user_id,
                    user_tag=user_tag,
                    wow_class=wow_class,
                    level=int(level),
                    confirmed=bool(confirmed),
                )

        groups: List[GroupState] = []
        for message_id, channel_id, guild_id, creator_id, locked in group_rows:
            state = GroupState(
                id=message_id,
                channel_id=channel_id,
                guild_id=guild_id,
                creator_id=creator_id,
                locked=bool(locked),
            )
            state.slots.update(assignments.get(message_id, {}))
            slots.refresh_completion(state)
            groups.append(state)
        return groups
