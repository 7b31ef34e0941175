from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Set

from .models import GroupState


class GroupRegistry:
    """In-memory working set of live groups, keyed by message id.

    Constructed once at startup, seeded from the store, and shared by the
    controller and the background sweep.
    """

    def __init__(self) -> None:
        self._groups: Dict[str, GroupState] = {}
        self._orphaned: Set[str] = set()

    def __contains__(self, group_id: object) -> bool:
        return group_id in self._groups

    def __len__(self) -> int:
        return len(self._groups)

    def __iter__(self) -> Iterator[GroupState]:
        return iter(list(self._groups.values()))

    def get(self, group_id: Optional[str]) -> Optional[GroupState]:
        if group_id is None:
            return None
        return self._groups.get(group_id)

    def set(self, state: GroupState) -> None:
        self._groups[state.id] = state
        self._orphaned.discard(state.id)

    def delete(self, group_id: str) -> Optional[GroupState]:
        self._orphaned.discard(group_id)
        return self._groups.pop(group_id, None)

    def seed(self, states: Iterable[GroupState]) -> int:
        count = 0
        for state in states:
            self.set(state)
            count += 1
        return count

    def mark_orphaned(self, group_id: str) -> None:
        if group_id in self._groups:
            self._orphaned.add(group_id)

    def orphaned(self) -> List[GroupState]:
        return [self._groups[group_id] for group_id in sorted(self._orphaned)]
