"""Filesystem Adapter contract shared by every snapshot component."""

from __future__ import annotations

from typing import Protocol

from devsnap.models import PathChange, Snapshot, SnapshotKind, SnapshotRequest, UsageStats

__all__ = [
    "FilesystemAdapter",
    "submit_request",
]


class FilesystemAdapter(Protocol):
    """Protocol for the copy-on-write store's snapshot primitives.

    Implementations return structured records; callers never parse tool
    output. Every call may block on storage I/O and is expected to enforce
    its own operation-appropriate timeout, reporting expiry as a
    FilesystemError of kind "timeout".

    Errors:
        FilesystemError: the store call failed (busy, full, permission, I/O, timeout)
        NotFoundError: the snapshot id is unknown
    """

    async def create_snapshot(
        self,
        subvolume: str,
        kind: SnapshotKind,
        description: str,
        tags: dict[str, str],
        protected: bool = False,
    ) -> Snapshot:
        """Atomically create a read-only snapshot of the live subvolume."""
        ...

    async def list_snapshots(self, subvolume: str) -> list[Snapshot]:
        """List snapshots of a subvolume, oldest first."""
        ...

    async def delete_snapshot(self, snapshot_id: int, subvolume: str) -> None:
        """Delete a snapshot. Raises NotFoundError if it no longer exists."""
        ...

    async def diff(self, snapshot_id: int, subvolume: str) -> list[PathChange]:
        """Paths that differ between a snapshot and the live subvolume."""
        ...

    async def restore_path(self, snapshot_id: int, subvolume: str, path: str) -> None:
        """Copy the snapshot's version of path over the live version."""
        ...

    async def restore_subvolume(self, snapshot_id: int, subvolume: str) -> None:
        """Roll the whole live subvolume back to the snapshot."""
        ...

    async def usage(self, subvolume: str) -> UsageStats:
        """Usage of the filesystem backing the subvolume."""
        ...

    async def is_active_root(self, subvolume: str) -> bool:
        """Whether the subvolume is the root of the running system."""
        ...


async def submit_request(adapter: FilesystemAdapter, request: SnapshotRequest) -> Snapshot:
    """Execute a SnapshotRequest against an adapter."""
    return await adapter.create_snapshot(
        request.subvolume,
        request.kind,
        request.description,
        dict(request.tags),
        protected=request.protected,
    )
