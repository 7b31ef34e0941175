"""Shared fixtures for the group-finder test suite."""

from __future__ import annotations

import io

import pytest

from discord_lfg.controller import Actor, GroupController
from discord_lfg.models import GroupState
from discord_lfg.progress import ProgressPrinter
from discord_lfg.registry import GroupRegistry
from tests.fakes import (
    FakeClock,
    FakeGroupStore,
    FakeMessagingGateway,
    FakeNotifier,
    FakePermissionProvider,
)

GROUP_ID = "900100"
CHANNEL_ID = "700100"
GUILD_ID = "600100"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry() -> GroupRegistry:
    return GroupRegistry()


@pytest.fixture
def store() -> FakeGroupStore:
    return FakeGroupStore()


@pytest.fixture
def gateway() -> FakeMessagingGateway:
    return FakeMessagingGateway()


@pytest.fixture
def permissions() -> FakePermissionProvider:
    return FakePermissionProvider(admins={"admin"})


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def controller(registry, store, gateway, permissions, notifier, clock, log_stream) -> GroupController:
    return GroupController(
        registry,
        store,
        gateway,
        permissions,
        ProgressPrinter(verbose=True, stream=log_stream),
        notifier,
        clock=clock,
    )


@pytest.fixture
def creator() -> Actor:
    return Actor(user_id="creator", tag="creator#0001")


@pytest.fixture
def group(registry, creator) -> GroupState:
    state = GroupState(id=GROUP_ID, channel_id=CHANNEL_ID, guild_id=GUILD_ID, creator_id=creator.user_id)
    registry.set(state)
    return state
