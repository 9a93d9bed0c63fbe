"""Production Filesystem Adapter backed by snapper on btrfs.

Snapshot metadata devsnap needs (kind, protection, VCS tags) is stored in
snapper's userdata so the store itself stays the single source of truth;
nothing is cached between invocations.
"""

from __future__ import annotations

import json
import re
from datetime import UTC, datetime

from devsnap.config import SubvolumeConfig, TimeoutConfig
from devsnap.disk import parse_df_output
from devsnap.errors import FilesystemError, FilesystemErrorKind, NotFoundError
from devsnap.executor import Executor, LocalExecutor
from devsnap.logger import get_logger
from devsnap.models import (
    ChangeType,
    CommandResult,
    PathChange,
    Snapshot,
    SnapshotKind,
    UsageStats,
)

__all__ = [
    "SnapperAdapter",
    "classify_error",
    "format_userdata",
    "parse_snapper_list",
    "parse_snapper_status",
]

logger = get_logger("devsnap.adapters.snapper")

# Userdata keys reserved for devsnap's own metadata; everything else is a tag
KIND_KEY = "kind"
PROTECTED_KEY = "protected"

_SNAPPER_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_NOT_FOUND = re.compile(r"snapshot '?\d+'? not found|does not exist|no such snapshot", re.IGNORECASE)

# Ordered: first match wins
_ERROR_PATTERNS: list[tuple[re.Pattern[str], FilesystemErrorKind]] = [
    (re.compile(r"busy|locked|in use", re.IGNORECASE), FilesystemErrorKind.BUSY),
    (re.compile(r"no space left|quota|disk full", re.IGNORECASE), FilesystemErrorKind.FULL),
    (
        re.compile(r"permission denied|not permitted|password is required|no permissions", re.IGNORECASE),
        FilesystemErrorKind.PERMISSION,
    ),
    (re.compile(r"input/output|i/o error|read-only file system", re.IGNORECASE), FilesystemErrorKind.IO),
]


def classify_error(stderr: str) -> FilesystemErrorKind:
    """Map snapper/df stderr to a FilesystemErrorKind."""
    for pattern, kind in _ERROR_PATTERNS:
        if pattern.search(stderr):
            return kind
    return FilesystemErrorKind.UNKNOWN


def _sanitize(value: str) -> str:
    # snapper userdata is "k=v,k=v"; separators inside values would split it
    return value.replace(",", "_").replace("=", "_").strip()


def format_userdata(kind: SnapshotKind, tags: dict[str, str], protected: bool) -> str:
    """Encode devsnap metadata as a snapper --userdata argument.

    Example:
        >>> format_userdata(SnapshotKind.MANUAL, {"repo": "api"}, True)
        'kind=manual,protected=yes,repo=api'
    """
    items = [f"{KIND_KEY}={kind.value}"]
    if protected:
        items.append(f"{PROTECTED_KEY}=yes")
    for key in sorted(tags):
        if key in (KIND_KEY, PROTECTED_KEY):
            continue
        items.append(f"{_sanitize(key)}={_sanitize(tags[key])}")
    return ",".join(items)


def parse_snapper_list(output: str, snapper_config: str, subvolume: str) -> list[Snapshot]:
    """Parse `snapper --jsonout list` output into Snapshot records.

    Snapshot 0 ("current") and snapshots without devsnap's kind userdata are
    not managed by devsnap and are skipped.

    Raises:
        ValueError: If the output is not the expected JSON document
    """
    data = json.loads(output)
    entries = data.get(snapper_config)
    if not isinstance(entries, list):
        raise ValueError(f"snapper output has no list for config '{snapper_config}'")

    snapshots: list[Snapshot] = []
    for entry in entries:
        number = int(entry.get("number", 0))
        if number == 0:
            continue
        userdata = entry.get("userdata") or {}
        kind_value = userdata.get(KIND_KEY)
        if kind_value is None:
            continue
        try:
            kind = SnapshotKind(kind_value)
        except ValueError:
            logger.debug("Skipping snapshot with unknown kind", snapshot_id=number, kind=kind_value)
            continue
        created_at = datetime.strptime(entry["date"], _SNAPPER_DATE_FORMAT).astimezone()
        snapshots.append(
            Snapshot(
                id=number,
                subvolume=subvolume,
                created_at=created_at,
                kind=kind,
                description=entry.get("description") or "",
                tags={k: v for k, v in userdata.items() if k not in (KIND_KEY, PROTECTED_KEY)},
                protected=userdata.get(PROTECTED_KEY) == "yes",
            )
        )

    snapshots.sort(key=lambda s: (s.created_at, s.id))
    return snapshots


def parse_snapper_status(output: str) -> list[PathChange]:
    """Parse `snapper status N..0` output.

    Each line is a six-character status field followed by the path. The first
    character is "+" (created since N), "-" (deleted since N), "c" (content
    changed) or "t" (type changed); metadata-only changes show "." there.
    """
    changes: list[PathChange] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        flags, _, path = line.partition(" ")
        path = path.strip()
        if not path:
            continue
        if flags.startswith("+"):
            change = ChangeType.ADDED
        elif flags.startswith("-"):
            change = ChangeType.REMOVED
        else:
            change = ChangeType.MODIFIED
        changes.append(PathChange(path=path, change=change))
    return changes


class SnapperAdapter:
    """FilesystemAdapter implementation that drives the snapper CLI."""

    def __init__(
        self,
        subvolumes: dict[str, SubvolumeConfig],
        timeouts: TimeoutConfig | None = None,
        executor: Executor | None = None,
        sudo: bool = True,
    ) -> None:
        """Initialize adapter.

        Args:
            subvolumes: Managed subvolumes keyed by name
            timeouts: Per-operation timeouts (defaults when None)
            executor: Command executor (LocalExecutor when None)
            sudo: Run commands through non-interactive sudo (ignored if executor given)
        """
        self._subvolumes = subvolumes
        self._timeouts = timeouts or TimeoutConfig()
        self._executor: Executor = executor or LocalExecutor(sudo=sudo)

    def _subvolume(self, name: str) -> SubvolumeConfig:
        try:
            return self._subvolumes[name]
        except KeyError:
            raise FilesystemError(f"Subvolume '{name}' is not managed by this adapter") from None

    async def _run(
        self,
        argv: list[str],
        timeout: float,
        subvolume: str,
        snapshot_id: int | None = None,
        path: str | None = None,
    ) -> CommandResult:
        """Run one store command, translating failures to the error taxonomy."""
        try:
            result = await self._executor.run_command(argv, timeout=timeout)
        except TimeoutError:
            raise FilesystemError(
                f"{argv[0]} {argv[1] if len(argv) > 1 else ''} timed out after {timeout}s".strip(),
                kind=FilesystemErrorKind.TIMEOUT,
                snapshot_id=snapshot_id,
                path=path,
            ) from None
        except (OSError, UnicodeError) as e:
            raise FilesystemError(
                f"Failed to run {argv[0]}: {e}",
                kind=FilesystemErrorKind.IO,
                snapshot_id=snapshot_id,
                path=path,
            ) from e

        if result.success:
            return result

        stderr = result.stderr.strip() or result.stdout.strip()
        if snapshot_id is not None and _NOT_FOUND.search(stderr):
            raise NotFoundError(snapshot_id, subvolume)
        raise FilesystemError(
            stderr or f"{argv[0]} exited with {result.exit_code}",
            kind=classify_error(stderr),
            snapshot_id=snapshot_id,
            path=path,
        )

    def _snapper(self, subvolume: str, *args: str) -> list[str]:
        return ["snapper", "-c", self._subvolume(subvolume).snapper_config, *args]

    async def create_snapshot(
        self,
        subvolume: str,
        kind: SnapshotKind,
        description: str,
        tags: dict[str, str],
        protected: bool = False,
    ) -> Snapshot:
        argv = self._snapper(
            subvolume,
            "create",
            "--print-number",
            "--description",
            description,
            "--userdata",
            format_userdata(kind, tags, protected),
        )
        result = await self._run(argv, self._timeouts.create, subvolume)
        try:
            number = int(result.stdout.strip().splitlines()[-1])
        except (IndexError, ValueError):
            raise FilesystemError(f"Unexpected snapper create output: {result.stdout!r}") from None

        logger.debug("Created snapshot", subvolume=subvolume, snapshot_id=number, kind=kind.value)
        return Snapshot(
            id=number,
            subvolume=subvolume,
            created_at=datetime.now(UTC),
            kind=kind,
            description=description,
            tags={_sanitize(k): _sanitize(v) for k, v in tags.items()},
            protected=protected,
        )

    async def list_snapshots(self, subvolume: str) -> list[Snapshot]:
        config = self._subvolume(subvolume).snapper_config
        argv = ["snapper", "--jsonout", "-c", config, "list", "--disable-used-space"]
        result = await self._run(argv, self._timeouts.list, subvolume)
        try:
            return parse_snapper_list(result.stdout, config, subvolume)
        except (ValueError, KeyError) as e:
            raise FilesystemError(f"Cannot parse snapper list output: {e}") from e

    async def delete_snapshot(self, snapshot_id: int, subvolume: str) -> None:
        argv = self._snapper(subvolume, "delete", str(snapshot_id))
        await self._run(argv, self._timeouts.delete, subvolume, snapshot_id=snapshot_id)

    async def diff(self, snapshot_id: int, subvolume: str) -> list[PathChange]:
        argv = self._snapper(subvolume, "status", f"{snapshot_id}..0")
        result = await self._run(argv, self._timeouts.diff, subvolume, snapshot_id=snapshot_id)
        return parse_snapper_status(result.stdout)

    async def restore_path(self, snapshot_id: int, subvolume: str, path: str) -> None:
        argv = self._snapper(subvolume, "undochange", f"{snapshot_id}..0", path)
        await self._run(argv, self._timeouts.restore, subvolume, snapshot_id=snapshot_id, path=path)

    async def restore_subvolume(self, snapshot_id: int, subvolume: str) -> None:
        if await self.is_active_root(subvolume):
            raise FilesystemError(
                f"Refusing to roll back live root subvolume '{subvolume}'",
                kind=FilesystemErrorKind.PERMISSION,
                snapshot_id=snapshot_id,
            )
        argv = self._snapper(subvolume, "undochange", f"{snapshot_id}..0")
        await self._run(argv, self._timeouts.restore, subvolume, snapshot_id=snapshot_id)

    async def usage(self, subvolume: str) -> UsageStats:
        mount_point = self._subvolume(subvolume).mount_point
        result = await self._run(["df", "-B1", mount_point], self._timeouts.usage, subvolume)
        disk_space = parse_df_output(result.stdout, mount_point)
        if disk_space is None:
            raise FilesystemError(f"Mount point {mount_point} not found in df output", path=mount_point)
        return UsageStats(used_percent=disk_space.use_percent, free_bytes=disk_space.available_bytes)

    async def is_active_root(self, subvolume: str) -> bool:
        return self._subvolume(subvolume).mount_point == "/"
