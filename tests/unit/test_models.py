"""Tests for core model helpers."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from devsnap.errors import FilesystemError, FilesystemErrorKind, NotFoundError
from devsnap.models import (
    Alert,
    AlertLevel,
    HealthReport,
    Snapshot,
    SnapshotKind,
    Tier,
    VcsEvent,
)


@pytest.mark.parametrize("tier", list(Tier))
def test_timeline_kind_round_trip(tier: Tier) -> None:
    assert SnapshotKind.timeline(tier).tier == tier


@pytest.mark.parametrize(
    "kind",
    [SnapshotKind.MILESTONE, SnapshotKind.PRE_DEPLOY, SnapshotKind.HOOK_PRE_COMMIT, SnapshotKind.PRE_RESTORE],
)
def test_non_timeline_kinds_have_no_tier(kind: SnapshotKind) -> None:
    assert kind.tier is None


def test_protected_by_default() -> None:
    protected = {kind for kind in SnapshotKind if kind.protected_by_default}

    assert protected == {SnapshotKind.MILESTONE, SnapshotKind.MANUAL, SnapshotKind.PRE_RESTORE}


def test_vcs_event_kinds() -> None:
    assert [event.kind for event in VcsEvent] == [
        SnapshotKind.HOOK_PRE_COMMIT,
        SnapshotKind.HOOK_PRE_REBASE,
        SnapshotKind.HOOK_POST_CHECKOUT,
    ]


def test_snapshot_age() -> None:
    created = datetime(2025, 6, 2, 9, 0, tzinfo=UTC)
    snapshot = Snapshot(id=1, subvolume="home", created_at=created, kind=SnapshotKind.TIMELINE_HOURLY)

    assert snapshot.age_seconds(created + timedelta(minutes=45)) == 2700
    assert snapshot.tier == Tier.HOURLY


def test_highest_alert() -> None:
    report = HealthReport(
        subvolume="home",
        used_percent=85,
        free_bytes=0,
        snapshot_count=3,
        oldest_snapshot_age=None,
        alerts=(Alert(AlertLevel.WARNING, "a"), Alert(AlertLevel.CRITICAL, "b")),
    )

    assert report.highest_alert == AlertLevel.CRITICAL


def test_filesystem_error_str() -> None:
    error = FilesystemError("Device busy", kind=FilesystemErrorKind.BUSY, snapshot_id=4, path="/home/a")

    assert str(error) == "[busy] Device busy (snapshot 4, path /home/a)"


def test_not_found_error_message() -> None:
    assert str(NotFoundError(9, "home")) == "Snapshot 9 not found in home"
