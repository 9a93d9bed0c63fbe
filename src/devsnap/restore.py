"""Restore Orchestrator: interactive, fail-closed restore sessions.

A session walks a fixed state machine:

    browsing -> diff-reviewed -> safety-snapshot-taken -> restoring
             -> completed | partially-failed

Every destructive call is refused unless a protected pre-restore snapshot of
the live subvolume was taken earlier in the same session, so any restore can
itself be undone. The safety snapshot is never deleted here; being protected
it stays until an operator removes it with `snapshot delete`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from devsnap.adapters import FilesystemAdapter
from devsnap.errors import NotFoundError, RestoreRefusedError, SnapshotError
from devsnap.logger import get_logger
from devsnap.models import (
    PathChange,
    PathRestoreResult,
    RestoreResult,
    RestoreState,
    Snapshot,
    SnapshotKind,
)

__all__ = [
    "RestoreSession",
    "rollback_phrase",
]

logger = get_logger("devsnap.restore")


def rollback_phrase(subvolume: str) -> str:
    """Phrase an operator must type verbatim to confirm a full rollback."""
    return f"ROLLBACK {subvolume}"


class RestoreSession:
    """One restore of one subvolume from one snapshot."""

    def __init__(
        self,
        adapter: FilesystemAdapter,
        subvolume: str,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._adapter = adapter
        self._clock = clock or (lambda: datetime.now(UTC))
        self.subvolume = subvolume
        self.state = RestoreState.BROWSING
        self.snapshot: Snapshot | None = None
        self.changes: list[PathChange] = []
        self.safety_snapshot: Snapshot | None = None
        self._log = logger.bind(subvolume=subvolume)

    def _require(self, *states: RestoreState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise RestoreRefusedError(f"Restore session is '{self.state.value}', expected one of: {allowed}")

    async def browse(self) -> list[Snapshot]:
        """Snapshots of the subvolume, newest first."""
        self._require(RestoreState.BROWSING, RestoreState.DIFF_REVIEWED)
        snapshots = await self._adapter.list_snapshots(self.subvolume)
        return sorted(snapshots, key=lambda s: (s.created_at, s.id), reverse=True)

    async def review(self, snapshot_id: int) -> list[PathChange]:
        """Select a snapshot and compute its diff against the live subvolume.

        May be repeated to pick a different snapshot until the safety
        snapshot has been taken.

        Raises:
            NotFoundError: If the subvolume has no such snapshot
            FilesystemError: If the diff cannot be computed
        """
        self._require(RestoreState.BROWSING, RestoreState.DIFF_REVIEWED)
        snapshots = await self._adapter.list_snapshots(self.subvolume)
        snapshot = next((s for s in snapshots if s.id == snapshot_id), None)
        if snapshot is None:
            raise NotFoundError(snapshot_id, self.subvolume)

        self.changes = await self._adapter.diff(snapshot_id, self.subvolume)
        self.snapshot = snapshot
        self.state = RestoreState.DIFF_REVIEWED
        self._log.info("Reviewed snapshot diff", snapshot_id=snapshot_id, changes=len(self.changes))
        return self.changes

    async def take_safety_snapshot(self) -> Snapshot:
        """Create the protected pre-restore snapshot of the live subvolume.

        Raises:
            RestoreRefusedError: If no diff has been reviewed yet
            FilesystemError: If the snapshot cannot be created; the session
                stays in diff-reviewed and nothing is restored
        """
        self._require(RestoreState.DIFF_REVIEWED)
        assert self.snapshot is not None
        timestamp = self._clock().strftime("%Y%m%d-%H%M%S")
        self.safety_snapshot = await self._adapter.create_snapshot(
            self.subvolume,
            SnapshotKind.PRE_RESTORE,
            f"pre-restore-{timestamp}",
            {"restore_from": str(self.snapshot.id)},
            protected=True,
        )
        self.state = RestoreState.SAFETY_SNAPSHOT_TAKEN
        self._log.info(
            "Created pre-restore safety snapshot",
            snapshot_id=self.safety_snapshot.id,
            restore_from=self.snapshot.id,
        )
        return self.safety_snapshot

    async def restore_paths(self, paths: Iterable[str]) -> RestoreResult:
        """Restore individual paths from the selected snapshot.

        Each path is restored independently: a failure is recorded and the
        remaining paths are still attempted.

        Returns:
            RestoreResult in state completed, or partially-failed if any
            path failed
        """
        self._require(RestoreState.SAFETY_SNAPSHOT_TAKEN)
        assert self.snapshot is not None and self.safety_snapshot is not None
        targets = list(dict.fromkeys(paths))
        if not targets:
            raise RestoreRefusedError("No paths selected for restore")

        self.state = RestoreState.RESTORING
        results: list[PathRestoreResult] = []
        for path in targets:
            try:
                await self._adapter.restore_path(self.snapshot.id, self.subvolume, path)
            except SnapshotError as e:
                self._log.error("Failed to restore path", snapshot_id=self.snapshot.id, path=path, error=str(e))
                results.append(PathRestoreResult(path=path, error=e))
            else:
                self._log.debug("Restored path", snapshot_id=self.snapshot.id, path=path)
                results.append(PathRestoreResult(path=path))

        result = RestoreResult(
            snapshot_id=self.snapshot.id,
            safety_snapshot=self.safety_snapshot,
            state=RestoreState.COMPLETED,
            paths=results,
        )
        if result.failed:
            result.state = RestoreState.PARTIALLY_FAILED
        self.state = result.state
        self._log.info(
            "Restore finished",
            state=result.state.value,
            restored=len(results) - len(result.failed),
            failed=len(result.failed),
        )
        return result

    async def ensure_rollback_target(self) -> None:
        """Refuse a full rollback of the root of the running system."""
        if await self._adapter.is_active_root(self.subvolume):
            raise RestoreRefusedError(
                f"Subvolume '{self.subvolume}' is the root of the running system and cannot be rolled back"
            )

    async def check_rollback_permitted(self, confirmation: str) -> None:
        """Refuse a full rollback of the live root or without the exact phrase.

        Raises:
            RestoreRefusedError: If the rollback is not permitted
        """
        await self.ensure_rollback_target()
        if confirmation != rollback_phrase(self.subvolume):
            raise RestoreRefusedError(f"Confirmation phrase mismatch; type '{rollback_phrase(self.subvolume)}'")

    async def restore_subvolume(self, confirmation: str) -> RestoreResult:
        """Roll the whole subvolume back to the selected snapshot.

        Raises:
            RestoreRefusedError: Out of order, live root, or wrong confirmation
            FilesystemError: If the rollback fails; the session ends
                partially-failed and the safety snapshot remains
        """
        self._require(RestoreState.SAFETY_SNAPSHOT_TAKEN)
        assert self.snapshot is not None and self.safety_snapshot is not None
        await self.check_rollback_permitted(confirmation)

        self.state = RestoreState.RESTORING
        try:
            await self._adapter.restore_subvolume(self.snapshot.id, self.subvolume)
        except SnapshotError:
            self.state = RestoreState.PARTIALLY_FAILED
            raise
        self.state = RestoreState.COMPLETED
        self._log.info("Rolled back subvolume", snapshot_id=self.snapshot.id)
        return RestoreResult(
            snapshot_id=self.snapshot.id,
            safety_snapshot=self.safety_snapshot,
            state=self.state,
        )
