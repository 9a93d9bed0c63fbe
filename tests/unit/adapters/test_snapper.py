"""Tests for SnapperAdapter and its output parsers."""

from __future__ import annotations

import json
import os
from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from devsnap.adapters.snapper import (
    SnapperAdapter,
    classify_error,
    format_userdata,
    parse_snapper_list,
    parse_snapper_status,
)
from devsnap.config import SubvolumeConfig, TimeoutConfig
from devsnap.errors import FilesystemError, FilesystemErrorKind, NotFoundError
from devsnap.models import ChangeType, CommandResult, PathChange, SnapshotKind

LIST_OUTPUT = json.dumps(
    {
        "home": [
            {"number": 0, "date": "", "description": "current", "userdata": None},
            {
                "number": 7,
                "date": "2025-06-01 09:00:00",
                "description": "git-pre-commit-api",
                "userdata": {"kind": "hook-pre-commit", "repo": "api", "ref": "main->main"},
            },
            {
                "number": 3,
                "date": "2025-05-30 12:00:00",
                "description": "release 1.0",
                "userdata": {"kind": "milestone", "protected": "yes"},
            },
            {"number": 4, "date": "2025-05-31 00:00:00", "description": "timeline", "userdata": None},
            {"number": 5, "date": "2025-05-31 01:00:00", "description": "?", "userdata": {"kind": "bogus"}},
        ]
    }
)

DF_OUTPUT = """\
Filesystem       1B-blocks         Used    Available Use% Mounted on
/dev/nvme0n1p2 1000000000000 420000000000 580000000000  42% /home
/dev/nvme0n1p2 1000000000000 420000000000 580000000000  42% /
"""


@pytest.fixture
def executor() -> MagicMock:
    mock = MagicMock()
    mock.run_command = AsyncMock(return_value=CommandResult(exit_code=0, stdout="", stderr=""))
    return mock


SUBVOLUMES = {
    "home": SubvolumeConfig(name="home", snapper_config="home", mount_point="/home"),
    "root": SubvolumeConfig(name="root", snapper_config="root", mount_point="/"),
}


@pytest.fixture
def snapper(executor: MagicMock) -> SnapperAdapter:
    return SnapperAdapter(SUBVOLUMES, TimeoutConfig(create=12), executor=executor)


@pytest.fixture
def snapper_output(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Callable[[bytes], int]:
    """Put a fake `snapper` on PATH; the returned callable sets the raw bytes it prints."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    output = tmp_path / "snapper-output"
    output.write_bytes(b"")
    script = bin_dir / "snapper"
    script.write_text(f'#!/bin/sh\ncat "{output}"\n')
    script.chmod(0o755)
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ['PATH']}")
    return output.write_bytes


def _argv(executor: MagicMock) -> list[str]:
    return list(executor.run_command.call_args.args[0])


class TestParsers:
    def test_parse_list_keeps_managed_snapshots_oldest_first(self) -> None:
        snapshots = parse_snapper_list(LIST_OUTPUT, "home", "home")

        assert [s.id for s in snapshots] == [3, 7]
        milestone, hook = snapshots
        assert milestone.kind == SnapshotKind.MILESTONE
        assert milestone.protected is True
        assert milestone.tags == {}
        assert hook.kind == SnapshotKind.HOOK_PRE_COMMIT
        assert hook.protected is False
        assert hook.tags == {"repo": "api", "ref": "main->main"}
        assert hook.created_at.tzinfo is not None

    def test_parse_list_missing_config(self) -> None:
        with pytest.raises(ValueError, match="root"):
            parse_snapper_list(LIST_OUTPUT, "root", "root")

    def test_parse_status(self) -> None:
        output = "+..... /home/dev/new.py\n-..... /home/dev/old.py\nc..... /home/dev/main.py\n\n....x. /home/dev/x\n"

        assert parse_snapper_status(output) == [
            PathChange("/home/dev/new.py", ChangeType.ADDED),
            PathChange("/home/dev/old.py", ChangeType.REMOVED),
            PathChange("/home/dev/main.py", ChangeType.MODIFIED),
            PathChange("/home/dev/x", ChangeType.MODIFIED),
        ]

    @pytest.mark.parametrize(
        ("stderr", "kind"),
        [
            ("Device or resource busy", FilesystemErrorKind.BUSY),
            ("snapper is locked by another process", FilesystemErrorKind.BUSY),
            ("No space left on device", FilesystemErrorKind.FULL),
            ("sudo: a password is required", FilesystemErrorKind.PERMISSION),
            ("Input/output error", FilesystemErrorKind.IO),
            ("something else", FilesystemErrorKind.UNKNOWN),
        ],
    )
    def test_classify_error(self, stderr: str, kind: FilesystemErrorKind) -> None:
        assert classify_error(stderr) == kind

    def test_userdata_escapes_separators(self) -> None:
        userdata = format_userdata(SnapshotKind.HOOK_PRE_REBASE, {"ref": "a,b=c", "kind": "x"}, False)

        assert userdata == "kind=hook-pre-rebase,ref=a_b_c"


@pytest.mark.asyncio
class TestSnapperAdapter:
    async def test_create_snapshot(self, snapper: SnapperAdapter, executor: MagicMock) -> None:
        executor.run_command.return_value = CommandResult(0, "42\n", "")

        snapshot = await snapper.create_snapshot("home", SnapshotKind.MILESTONE, "release", {"v": "1"}, True)

        assert snapshot.id == 42
        assert snapshot.protected is True
        assert _argv(executor) == [
            "snapper", "-c", "home", "create", "--print-number",
            "--description", "release", "--userdata", "kind=milestone,protected=yes,v=1",
        ]  # fmt: skip
        assert executor.run_command.call_args.kwargs["timeout"] == 12

    async def test_create_with_garbage_output(self, snapper: SnapperAdapter, executor: MagicMock) -> None:
        executor.run_command.return_value = CommandResult(0, "", "")

        with pytest.raises(FilesystemError):
            await snapper.create_snapshot("home", SnapshotKind.MANUAL, "x", {})

    async def test_list_snapshots(self, snapper: SnapperAdapter, executor: MagicMock) -> None:
        executor.run_command.return_value = CommandResult(0, LIST_OUTPUT, "")

        snapshots = await snapper.list_snapshots("home")

        assert [s.id for s in snapshots] == [3, 7]
        assert _argv(executor)[:4] == ["snapper", "--jsonout", "-c", "home"]

    async def test_unparseable_list_is_filesystem_error(self, snapper: SnapperAdapter, executor) -> None:
        executor.run_command.return_value = CommandResult(0, "not json", "")

        with pytest.raises(FilesystemError):
            await snapper.list_snapshots("home")

    async def test_delete_unknown_snapshot(self, snapper: SnapperAdapter, executor: MagicMock) -> None:
        executor.run_command.return_value = CommandResult(1, "", "Snapshot '99' not found.")

        with pytest.raises(NotFoundError) as exc_info:
            await snapper.delete_snapshot(99, "home")
        assert exc_info.value.snapshot_id == 99

    async def test_busy_store(self, snapper: SnapperAdapter, executor: MagicMock) -> None:
        executor.run_command.return_value = CommandResult(1, "", "Device or resource busy")

        with pytest.raises(FilesystemError) as exc_info:
            await snapper.delete_snapshot(5, "home")
        assert exc_info.value.kind == FilesystemErrorKind.BUSY
        assert exc_info.value.snapshot_id == 5

    async def test_timeout_is_filesystem_error(self, snapper: SnapperAdapter, executor: MagicMock) -> None:
        executor.run_command.side_effect = TimeoutError()

        with pytest.raises(FilesystemError) as exc_info:
            await snapper.diff(3, "home")
        assert exc_info.value.kind == FilesystemErrorKind.TIMEOUT

    async def test_missing_binary_is_io_error(self, snapper: SnapperAdapter, executor: MagicMock) -> None:
        executor.run_command.side_effect = FileNotFoundError("snapper")

        with pytest.raises(FilesystemError) as exc_info:
            await snapper.list_snapshots("home")
        assert exc_info.value.kind == FilesystemErrorKind.IO

    async def test_restore_path_uses_undochange(self, snapper: SnapperAdapter, executor: MagicMock) -> None:
        await snapper.restore_path(3, "home", "/home/dev/main.py")

        assert _argv(executor) == ["snapper", "-c", "home", "undochange", "3..0", "/home/dev/main.py"]

    async def test_root_rollback_is_refused(self, snapper: SnapperAdapter, executor: MagicMock) -> None:
        with pytest.raises(FilesystemError) as exc_info:
            await snapper.restore_subvolume(3, "root")

        assert exc_info.value.kind == FilesystemErrorKind.PERMISSION
        executor.run_command.assert_not_called()

    async def test_usage_from_df(self, snapper: SnapperAdapter, executor: MagicMock) -> None:
        executor.run_command.return_value = CommandResult(0, DF_OUTPUT, "")

        usage = await snapper.usage("home")

        assert usage.used_percent == 42
        assert usage.free_bytes == 580000000000
        assert _argv(executor) == ["df", "-B1", "/home"]

    async def test_unmanaged_subvolume(self, snapper: SnapperAdapter) -> None:
        with pytest.raises(FilesystemError):
            await snapper.list_snapshots("scratch")

    async def test_is_active_root(self, snapper: SnapperAdapter) -> None:
        assert await snapper.is_active_root("root") is True
        assert await snapper.is_active_root("home") is False

    async def test_decode_failure_is_io_error(self, snapper: SnapperAdapter, executor: MagicMock) -> None:
        executor.run_command.side_effect = UnicodeDecodeError("utf-8", b"caf\xe9", 3, 4, "invalid continuation byte")

        with pytest.raises(FilesystemError) as exc_info:
            await snapper.restore_path(3, "home", "/home/dev/main.py")
        assert exc_info.value.kind == FilesystemErrorKind.IO
        assert exc_info.value.snapshot_id == 3
        assert exc_info.value.path == "/home/dev/main.py"


@pytest.mark.asyncio
class TestNonUtf8Output:
    """Bytes that are not UTF-8 reach the adapter from a real snapper process."""

    async def test_list_with_foreign_description(self, snapper_output: Callable[[bytes], int]) -> None:
        snapper_output(LIST_OUTPUT.encode().replace(b'"description": "timeline"', b'"description": "caf\xe9"'))

        snapshots = await SnapperAdapter(SUBVOLUMES, sudo=False).list_snapshots("home")

        assert [s.id for s in snapshots] == [3, 7]

    async def test_diff_with_foreign_file_name(self, snapper_output: Callable[[bytes], int]) -> None:
        snapper_output(b"c..... /home/u/caf\xe9.txt\n+..... /home/u/new.txt\n")

        changes = await SnapperAdapter(SUBVOLUMES, sudo=False).diff(3, "home")

        assert changes == [
            PathChange("/home/u/caf\ufffd.txt", ChangeType.MODIFIED),
            PathChange("/home/u/new.txt", ChangeType.ADDED),
        ]
