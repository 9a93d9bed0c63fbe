"""In-memory Filesystem Adapter.

Models each subvolume as a flat mapping of path -> content, and each
snapshot as a frozen copy of that mapping. Used by the test suite and by
`--dry-run` style experiments; supports failure injection, artificial
latency and a journal of every call so ordering guarantees can be checked.
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from devsnap.errors import FilesystemError, FilesystemErrorKind, NotFoundError
from devsnap.models import ChangeType, PathChange, Snapshot, SnapshotKind, UsageStats

__all__ = ["AdapterCall", "InMemoryAdapter"]


@dataclass(frozen=True)
class AdapterCall:
    """One journal entry."""

    operation: str
    subvolume: str
    snapshot_id: int | None = None
    path: str | None = None
    kind: SnapshotKind | None = None
    protected: bool = False


@dataclass
class _StoredSnapshot:
    snapshot: Snapshot
    files: dict[str, str] = field(default_factory=dict)


def _under(path: str, root: str) -> bool:
    return path == root or path.startswith(root.rstrip("/") + "/")


class InMemoryAdapter:
    """FilesystemAdapter holding all state in process memory."""

    def __init__(
        self,
        clock: Callable[[], datetime] | None = None,
        active_roots: Iterable[str] = (),
    ) -> None:
        """Initialize adapter.

        Args:
            clock: Returns the creation time for new snapshots (UTC now by default)
            active_roots: Subvolumes to treat as the live root of the running system
        """
        self._clock = clock or (lambda: datetime.now(UTC))
        self._active_roots = set(active_roots)
        self._ids = itertools.count(1)
        self._snapshots: dict[str, dict[int, _StoredSnapshot]] = {}
        self._usage: dict[str, UsageStats] = {}
        self.files: dict[str, dict[str, str]] = {}
        self.calls: list[AdapterCall] = []
        self.failures: dict[str | tuple[str, str], Exception] = {}
        self.path_failures: dict[str, Exception] = {}
        self.delays: dict[str, float] = {}

    # Test helpers

    def fail(self, operation: str, error: Exception | None = None, subvolume: str | None = None) -> None:
        """Make calls to `operation` raise (FilesystemError of kind busy by default).

        With `subvolume`, only calls for that subvolume fail.
        """
        key = operation if subvolume is None else (operation, subvolume)
        self.failures[key] = error or FilesystemError(
            f"{operation} failed: device busy", kind=FilesystemErrorKind.BUSY
        )

    def set_usage(self, subvolume: str, used_percent: int, free_bytes: int = 10 * 2**30) -> None:
        self._usage[subvolume] = UsageStats(used_percent=used_percent, free_bytes=free_bytes)

    def add_snapshot(
        self,
        subvolume: str,
        kind: SnapshotKind,
        created_at: datetime,
        description: str = "",
        tags: dict[str, str] | None = None,
        protected: bool | None = None,
    ) -> Snapshot:
        """Seed a snapshot with an explicit creation time, bypassing the journal."""
        snapshot = Snapshot(
            id=next(self._ids),
            subvolume=subvolume,
            created_at=created_at,
            kind=kind,
            description=description,
            tags=dict(tags or {}),
            protected=kind.protected_by_default if protected is None else protected,
        )
        self._snapshots.setdefault(subvolume, {})[snapshot.id] = _StoredSnapshot(
            snapshot, dict(self.files.get(subvolume, {}))
        )
        return snapshot

    def remove_externally(self, subvolume: str, snapshot_id: int) -> None:
        """Delete a snapshot as a concurrent process would, without journaling."""
        self._snapshots.get(subvolume, {}).pop(snapshot_id, None)

    def operations(self, subvolume: str | None = None) -> list[str]:
        """Journal operation names, optionally filtered by subvolume."""
        return [c.operation for c in self.calls if subvolume is None or c.subvolume == subvolume]

    async def _enter(self, call: AdapterCall) -> None:
        self.calls.append(call)
        delay = self.delays.get(call.operation)
        if delay:
            await asyncio.sleep(delay)
        error = self.failures.get((call.operation, call.subvolume)) or self.failures.get(call.operation)
        if error is not None:
            raise error

    def _stored(self, snapshot_id: int, subvolume: str) -> _StoredSnapshot:
        try:
            return self._snapshots[subvolume][snapshot_id]
        except KeyError:
            raise NotFoundError(snapshot_id, subvolume) from None

    # FilesystemAdapter

    async def create_snapshot(
        self,
        subvolume: str,
        kind: SnapshotKind,
        description: str,
        tags: dict[str, str],
        protected: bool = False,
    ) -> Snapshot:
        await self._enter(AdapterCall("create", subvolume, kind=kind, protected=protected))
        snapshot = Snapshot(
            id=next(self._ids),
            subvolume=subvolume,
            created_at=self._clock(),
            kind=kind,
            description=description,
            tags=dict(tags),
            protected=protected,
        )
        self._snapshots.setdefault(subvolume, {})[snapshot.id] = _StoredSnapshot(
            snapshot, dict(self.files.get(subvolume, {}))
        )
        return snapshot

    async def list_snapshots(self, subvolume: str) -> list[Snapshot]:
        await self._enter(AdapterCall("list", subvolume))
        snapshots = [stored.snapshot for stored in self._snapshots.get(subvolume, {}).values()]
        return sorted(snapshots, key=lambda s: (s.created_at, s.id))

    async def delete_snapshot(self, snapshot_id: int, subvolume: str) -> None:
        await self._enter(AdapterCall("delete", subvolume, snapshot_id=snapshot_id))
        self._stored(snapshot_id, subvolume)
        del self._snapshots[subvolume][snapshot_id]

    async def diff(self, snapshot_id: int, subvolume: str) -> list[PathChange]:
        await self._enter(AdapterCall("diff", subvolume, snapshot_id=snapshot_id))
        snap_files = self._stored(snapshot_id, subvolume).files
        live_files = self.files.get(subvolume, {})
        changes: list[PathChange] = []
        for path in sorted(snap_files.keys() | live_files.keys()):
            if path not in snap_files:
                changes.append(PathChange(path, ChangeType.ADDED))
            elif path not in live_files:
                changes.append(PathChange(path, ChangeType.REMOVED))
            elif snap_files[path] != live_files[path]:
                changes.append(PathChange(path, ChangeType.MODIFIED))
        return changes

    async def restore_path(self, snapshot_id: int, subvolume: str, path: str) -> None:
        await self._enter(AdapterCall("restore_path", subvolume, snapshot_id=snapshot_id, path=path))
        error = self.path_failures.get(path)
        if error is not None:
            raise error
        snap_files = self._stored(snapshot_id, subvolume).files
        live_files = self.files.setdefault(subvolume, {})
        affected = [p for p in snap_files.keys() | live_files.keys() if _under(p, path)]
        if not affected:
            raise FilesystemError(
                "No such file in snapshot or live subvolume",
                kind=FilesystemErrorKind.IO,
                snapshot_id=snapshot_id,
                path=path,
            )
        for p in affected:
            if p in snap_files:
                live_files[p] = snap_files[p]
            else:
                del live_files[p]

    async def restore_subvolume(self, snapshot_id: int, subvolume: str) -> None:
        await self._enter(AdapterCall("restore_subvolume", subvolume, snapshot_id=snapshot_id))
        if subvolume in self._active_roots:
            raise FilesystemError(
                f"Refusing to roll back live root subvolume '{subvolume}'",
                kind=FilesystemErrorKind.PERMISSION,
                snapshot_id=snapshot_id,
            )
        self.files[subvolume] = dict(self._stored(snapshot_id, subvolume).files)

    async def usage(self, subvolume: str) -> UsageStats:
        await self._enter(AdapterCall("usage", subvolume))
        return self._usage.get(subvolume, UsageStats(used_percent=0, free_bytes=0))

    async def is_active_root(self, subvolume: str) -> bool:
        return subvolume in self._active_roots
