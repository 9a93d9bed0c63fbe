"""Shared test fixtures for devsnap tests."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import structlog

from devsnap.adapters import InMemoryAdapter
from devsnap.models import RetentionPolicy, Tier
from devsnap.policy import PolicyStore

NOW = datetime(2025, 6, 2, 10, 0, tzinfo=UTC)


class FakeClock:
    """Settable clock handed to InMemoryAdapter."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point Path.home() at a temporary directory so config and logs never touch the real home."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home)
    return home


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Undo configure_logging() calls made by CLI tests."""
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def adapter(clock: FakeClock) -> InMemoryAdapter:
    """In-memory adapter whose "root" subvolume is the live root."""
    return InMemoryAdapter(clock=clock, active_roots={"root"})


@pytest.fixture
def home_policy() -> RetentionPolicy:
    return RetentionPolicy(
        limits={Tier.HOURLY: 2, Tier.DAILY: 3},
        min_age=1800,
        number_limit=10,
        warn_threshold=70,
        critical_threshold=80,
    )


@pytest.fixture
def policies(home_policy: RetentionPolicy) -> PolicyStore:
    return PolicyStore({"home": home_policy, "root": RetentionPolicy(limits={Tier.DAILY: 2})})
