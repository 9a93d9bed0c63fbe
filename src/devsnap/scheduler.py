"""Snapshot Scheduler: periodic timeline snapshots.

The scheduler holds no state between invocations. An external timer runs
`snapshot tick` once a minute; each tick selects the schedule entries whose
cron expression matches the current minute and fires them. Re-running a
tick is harmless because `fire` refuses to create a second snapshot of the
same tier within the policy's minimum age.
"""

from __future__ import annotations

from datetime import datetime

from croniter import croniter

from devsnap.adapters import FilesystemAdapter, submit_request
from devsnap.errors import SnapshotError
from devsnap.logger import get_logger
from devsnap.models import ScheduleEntry, Snapshot, SnapshotKind, SnapshotRequest, Tier
from devsnap.policy import PolicyStore

__all__ = ["Scheduler"]

logger = get_logger("devsnap.scheduler")


class Scheduler:
    """Fires timeline snapshot requests per subvolume and tier."""

    def __init__(
        self,
        adapter: FilesystemAdapter,
        policies: PolicyStore,
        schedule: list[ScheduleEntry] | None = None,
    ) -> None:
        self._adapter = adapter
        self._policies = policies
        self._schedule = list(schedule or [])

    async def fire(self, subvolume: str, tier: Tier, now: datetime) -> SnapshotRequest | None:
        """Decide whether a timeline snapshot of `tier` is due.

        Args:
            subvolume: Subvolume name
            tier: Retention tier to fire
            now: Current time (timezone-aware)

        Returns:
            A SnapshotRequest, or None when the last snapshot of this tier is
            younger than the policy's min_age, the tier is disabled, or the
            index cannot be read. Never raises.
        """
        log = logger.bind(subvolume=subvolume, tier=tier.value)
        try:
            policy = self._policies.get(subvolume)
            if policy.limit(tier) == 0:
                log.debug("Tier disabled, nothing to fire")
                return None

            kind = SnapshotKind.timeline(tier)
            snapshots = await self._adapter.list_snapshots(subvolume)
        except SnapshotError as e:
            log.warning("Cannot read snapshot index, skipping", error=str(e), error_kind=e.kind_name)
            return None
        except Exception as e:
            log.error("Unexpected error reading snapshot index, skipping", error=str(e), exc_info=True)
            return None

        of_tier = [s for s in snapshots if s.kind == kind]
        if of_tier:
            last = max(of_tier, key=lambda s: s.created_at)
            age = last.age_seconds(now)
            if age < policy.min_age:
                log.debug(
                    "Last snapshot of tier is younger than min_age",
                    snapshot_id=last.id,
                    age=int(age),
                    min_age=policy.min_age,
                )
                return None

        return SnapshotRequest(
            subvolume=subvolume,
            kind=kind,
            description=f"timeline {tier.value}",
        )

    async def run(self, subvolume: str, tier: Tier, now: datetime) -> Snapshot | None:
        """Fire one tier and execute the resulting request.

        Creation failures, expected or not, are logged and swallowed; the
        next tick retries.
        """
        request = await self.fire(subvolume, tier, now)
        if request is None:
            return None
        try:
            snapshot = await submit_request(self._adapter, request)
        except SnapshotError as e:
            logger.warning(
                "Timeline snapshot failed",
                subvolume=subvolume,
                tier=tier.value,
                error=str(e),
                error_kind=e.kind_name,
            )
            return None
        except Exception as e:
            logger.error(
                "Unexpected error creating timeline snapshot",
                subvolume=subvolume,
                tier=tier.value,
                error=str(e),
                exc_info=True,
            )
            return None
        logger.info("Created timeline snapshot", subvolume=subvolume, tier=tier.value, snapshot_id=snapshot.id)
        return snapshot

    def due_entries(self, now: datetime) -> list[ScheduleEntry]:
        """Schedule entries whose cron expression matches the minute of `now`."""
        return [entry for entry in self._schedule if croniter.match(entry.cron, now)]

    async def tick(self, now: datetime) -> list[Snapshot]:
        """Run every due schedule entry. One failing entry never stops the others.

        Returns:
            Snapshots created during this tick
        """
        created: list[Snapshot] = []
        due = self.due_entries(now)
        logger.debug("Scheduler tick", due=len(due), at=now.isoformat())
        for entry in due:
            snapshot = await self.run(entry.subvolume, entry.tier, now)
            if snapshot is not None:
                created.append(snapshot)
        return created
