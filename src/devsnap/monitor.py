"""Monitor/Reporter: store usage and snapshot counts per subvolume."""

from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime

from devsnap.adapters import FilesystemAdapter
from devsnap.disk import format_bytes
from devsnap.errors import SnapshotError
from devsnap.logger import get_logger
from devsnap.models import Alert, AlertLevel, HealthReport, RetentionPolicy, Snapshot, Tier, UsageStats
from devsnap.policy import PolicyStore

__all__ = ["Monitor", "evaluate_alerts"]

logger = get_logger("devsnap.monitor")


def evaluate_alerts(usage: UsageStats, snapshot_count: int, policy: RetentionPolicy) -> list[Alert]:
    """Alerts for one subvolume.

    Usage raises at most one alert: critical at or above the critical
    threshold, otherwise warning at or above the warn threshold. A snapshot
    count at or above number_limit adds a warning of its own.
    """
    alerts: list[Alert] = []
    if usage.used_percent >= policy.critical_threshold:
        alerts.append(
            Alert(
                AlertLevel.CRITICAL,
                f"Store usage {usage.used_percent}% is at or above critical threshold "
                f"{policy.critical_threshold}% ({format_bytes(usage.free_bytes)} free)",
            )
        )
    elif usage.used_percent >= policy.warn_threshold:
        alerts.append(
            Alert(
                AlertLevel.WARNING,
                f"Store usage {usage.used_percent}% is at or above warning threshold "
                f"{policy.warn_threshold}% ({format_bytes(usage.free_bytes)} free)",
            )
        )
    if snapshot_count >= policy.number_limit:
        alerts.append(
            Alert(
                AlertLevel.WARNING,
                f"{snapshot_count} snapshots reached number_limit {policy.number_limit}; "
                "run reconcile before the next scheduled pass",
            )
        )
    return alerts


class Monitor:
    """Builds HealthReports from the adapter; holds no state of its own."""

    def __init__(self, adapter: FilesystemAdapter, policies: PolicyStore) -> None:
        self._adapter = adapter
        self._policies = policies

    async def report(self, subvolume: str, now: datetime | None = None) -> HealthReport:
        """Report usage, counts and alerts for a subvolume.

        Raises:
            PolicyError: If the subvolume has no policy
            FilesystemError: If usage or the snapshot list cannot be read
        """
        now = now or datetime.now(UTC)
        policy = self._policies.get(subvolume)
        usage = await self._adapter.usage(subvolume)
        snapshots = await self._adapter.list_snapshots(subvolume)

        oldest: Snapshot | None = min(snapshots, key=lambda s: s.created_at, default=None)
        tier_counts = Counter(s.tier for s in snapshots if s.tier is not None)
        alerts = evaluate_alerts(usage, len(snapshots), policy)

        log = logger.bind(subvolume=subvolume)
        for alert in alerts:
            if alert.level == AlertLevel.CRITICAL:
                log.critical(alert.message, used_percent=usage.used_percent)
            else:
                log.warning(alert.message, used_percent=usage.used_percent, snapshot_count=len(snapshots))

        return HealthReport(
            subvolume=subvolume,
            used_percent=usage.used_percent,
            free_bytes=usage.free_bytes,
            snapshot_count=len(snapshots),
            oldest_snapshot_age=oldest.age_seconds(now) if oldest else None,
            tier_counts={tier: tier_counts[tier] for tier in Tier if tier_counts[tier]},
            alerts=tuple(alerts),
        )

    async def summary(self, subvolumes: list[str] | None = None, now: datetime | None = None) -> list[HealthReport]:
        """Reports for several subvolumes (all configured ones by default).

        A subvolume whose store cannot be read gets an unreadable report with
        a critical alert instead of hiding the others.
        """
        reports: list[HealthReport] = []
        for name in subvolumes or self._policies.subvolumes():
            try:
                reports.append(await self.report(name, now))
            except SnapshotError as e:
                logger.error("Cannot report on subvolume", subvolume=name, error=str(e), error_kind=e.kind_name)
                reports.append(HealthReport.unreadable(name, str(e)))
        return reports
