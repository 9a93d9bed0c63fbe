"""Retention Engine: prune snapshots according to a subvolume's policy.

Bucketed retention in the family of classic timeline pruning:

1. Unprotected timeline snapshots are grouped by tier; each tier keeps its
   newest `limit[tier]` snapshots.
2. The tier survivors plus every unprotected non-timeline snapshot are then
   capped at `number_limit`, newest first. The global cap wins whenever it
   is stricter than the sum of tier limits.
3. Protected snapshots and snapshots younger than `min_age` are never
   selected.

The engine always re-reads the live snapshot list right before acting and
tolerates targets that disappear underneath it.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, datetime

from devsnap.adapters import FilesystemAdapter
from devsnap.errors import ConcurrencyError, FilesystemError, NotFoundError
from devsnap.logger import get_logger
from devsnap.models import ReconcileResult, RetentionPolicy, Snapshot, Tier
from devsnap.policy import PolicyStore

__all__ = [
    "RetentionEngine",
    "select_for_deletion",
]

logger = get_logger("devsnap.retention")


def _newest_first(snapshots: list[Snapshot]) -> list[Snapshot]:
    return sorted(snapshots, key=lambda s: (s.created_at, s.id), reverse=True)


def select_for_deletion(
    snapshots: list[Snapshot],
    policy: RetentionPolicy,
    now: datetime,
) -> list[Snapshot]:
    """Compute which snapshots the policy wants removed.

    Args:
        snapshots: Full snapshot list of one subvolume
        policy: Retention policy for that subvolume
        now: Reference time for min_age

    Returns:
        Snapshots to delete, oldest first
    """
    unprotected = [s for s in snapshots if not s.protected]

    by_tier: dict[Tier, list[Snapshot]] = defaultdict(list)
    survivors: list[Snapshot] = []
    for snapshot in unprotected:
        if snapshot.tier is None:
            survivors.append(snapshot)
        else:
            by_tier[snapshot.tier].append(snapshot)

    candidates: dict[int, Snapshot] = {}
    for tier, group in by_tier.items():
        ordered = _newest_first(group)
        limit = policy.limit(tier)
        survivors.extend(ordered[:limit])
        for snapshot in ordered[limit:]:
            candidates[snapshot.id] = snapshot

    for snapshot in _newest_first(survivors)[policy.number_limit :]:
        candidates[snapshot.id] = snapshot

    selected = [s for s in candidates.values() if s.age_seconds(now) >= policy.min_age]
    return sorted(selected, key=lambda s: (s.created_at, s.id))


class RetentionEngine:
    """Reconciles a subvolume's snapshot set against its retention policy."""

    def __init__(self, adapter: FilesystemAdapter, policies: PolicyStore) -> None:
        self._adapter = adapter
        self._policies = policies

    async def _delete(self, snapshot: Snapshot) -> None:
        """Delete one snapshot.

        Raises:
            ConcurrencyError: The snapshot was already gone (benign)
            FilesystemError: The store refused the deletion
        """
        try:
            await self._adapter.delete_snapshot(snapshot.id, snapshot.subvolume)
        except NotFoundError as e:
            raise ConcurrencyError(f"Snapshot {snapshot.id} was already deleted") from e

    async def reconcile(
        self,
        subvolume: str,
        now: datetime | None = None,
        dry_run: bool = False,
    ) -> ReconcileResult:
        """Bring a subvolume's snapshot set within its policy.

        Args:
            subvolume: Subvolume name
            now: Reference time (defaults to current UTC time)
            dry_run: Compute the plan without deleting anything

        Returns:
            ReconcileResult with kept and deleted snapshots (newest first) and
            per-snapshot errors. Snapshots whose deletion failed stay in
            `kept` and are reconsidered on the next pass.

        Raises:
            PolicyError: If the subvolume has no policy
            FilesystemError: If the snapshot list cannot be read
        """
        now = now or datetime.now(UTC)
        policy = self._policies.get(subvolume)
        log = logger.bind(subvolume=subvolume)

        # Fresh read every pass; never act on a list from another invocation
        snapshots = await self._adapter.list_snapshots(subvolume)
        selected = select_for_deletion(snapshots, policy, now)
        log.info(
            "Reconciling snapshots",
            total=len(snapshots),
            selected=len(selected),
            number_limit=policy.number_limit,
            dry_run=dry_run,
        )

        result = ReconcileResult()
        deleted_ids: set[int] = set()

        if dry_run:
            result.deleted = _newest_first(selected)
            result.kept = _newest_first([s for s in snapshots if s.id not in {d.id for d in selected}])
            return result

        for snapshot in selected:
            try:
                await self._delete(snapshot)
            except ConcurrencyError:
                log.debug("Snapshot already removed by a concurrent pass", snapshot_id=snapshot.id)
            except FilesystemError as e:
                log.error(
                    "Failed to delete snapshot, will retry next pass",
                    snapshot_id=snapshot.id,
                    error=str(e),
                    error_kind=e.kind.value,
                )
                result.errors.append(
                    FilesystemError(e.args[0], kind=e.kind, snapshot_id=snapshot.id, path=e.path)
                )
                continue
            else:
                log.debug("Deleted snapshot", snapshot_id=snapshot.id, kind=snapshot.kind.value)
            deleted_ids.add(snapshot.id)
            result.deleted.append(snapshot)

        result.deleted = _newest_first(result.deleted)
        result.kept = _newest_first([s for s in snapshots if s.id not in deleted_ids])
        log.info("Reconcile finished", deleted=len(result.deleted), errors=len(result.errors))
        return result
