"""Core types and dataclasses for devsnap."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum, StrEnum

__all__ = [
    "Alert",
    "AlertLevel",
    "ChangeType",
    "CommandResult",
    "HealthReport",
    "LogLevel",
    "PROTECTED_KINDS",
    "PathChange",
    "PathRestoreResult",
    "ReconcileResult",
    "RestoreResult",
    "RestoreState",
    "RetentionPolicy",
    "ScheduleEntry",
    "Snapshot",
    "SnapshotKind",
    "SnapshotRequest",
    "Tier",
    "UsageStats",
    "VcsEvent",
]


class LogLevel(IntEnum):
    """Six-level logging hierarchy with explicit ordering.

    Values line up with stdlib logging so structlog can route them through
    standard handlers. FULL sits between DEBUG and INFO.
    """

    DEBUG = 10  # Most verbose, internal diagnostics
    FULL = 15  # Per-snapshot details
    INFO = 20  # High-level operations
    WARNING = 30  # Unexpected but non-fatal
    ERROR = 40  # Recoverable errors
    CRITICAL = 50  # Unrecoverable


class Tier(StrEnum):
    """Retention bucket for timeline snapshots."""

    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class SnapshotKind(StrEnum):
    """Why a snapshot was taken."""

    TIMELINE_HOURLY = "timeline-hourly"
    TIMELINE_DAILY = "timeline-daily"
    TIMELINE_WEEKLY = "timeline-weekly"
    TIMELINE_MONTHLY = "timeline-monthly"
    TIMELINE_YEARLY = "timeline-yearly"
    MILESTONE = "milestone"
    PRE_DEPLOY = "pre-deploy"
    HOOK_PRE_COMMIT = "hook-pre-commit"
    HOOK_PRE_REBASE = "hook-pre-rebase"
    HOOK_POST_CHECKOUT = "hook-post-checkout"
    PRE_RESTORE = "pre-restore"
    MANUAL = "manual"

    @classmethod
    def timeline(cls, tier: Tier) -> SnapshotKind:
        """Return the timeline kind for a tier (e.g. hourly -> timeline-hourly)."""
        return cls(f"timeline-{tier.value}")

    @property
    def tier(self) -> Tier | None:
        """Retention tier of a timeline kind, None for every other kind."""
        if self.value.startswith("timeline-"):
            return Tier(self.value.removeprefix("timeline-"))
        return None

    @property
    def protected_by_default(self) -> bool:
        return self in PROTECTED_KINDS


PROTECTED_KINDS = frozenset({SnapshotKind.MILESTONE, SnapshotKind.MANUAL, SnapshotKind.PRE_RESTORE})


class VcsEvent(StrEnum):
    """VCS operations that trigger a hook snapshot."""

    PRE_COMMIT = "pre-commit"
    PRE_REBASE = "pre-rebase"
    POST_CHECKOUT = "post-checkout"

    @property
    def kind(self) -> SnapshotKind:
        return SnapshotKind(f"hook-{self.value}")


@dataclass(frozen=True)
class CommandResult:
    """Result of executing a command via LocalExecutor."""

    exit_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class Snapshot:
    """Immutable metadata for one snapshot of a subvolume."""

    id: int  # Store-assigned, monotonic per subvolume
    subvolume: str  # e.g., "home"
    created_at: datetime  # Timezone-aware
    kind: SnapshotKind
    description: str = ""
    tags: dict[str, str] = field(default_factory=dict, hash=False)
    protected: bool = False

    @property
    def tier(self) -> Tier | None:
        return self.kind.tier

    def age_seconds(self, now: datetime) -> float:
        return (now - self.created_at).total_seconds()


@dataclass(frozen=True)
class SnapshotRequest:
    """A request to create a snapshot, emitted by the Scheduler or Hook Dispatcher."""

    subvolume: str
    kind: SnapshotKind
    description: str
    tags: dict[str, str] = field(default_factory=dict, hash=False)
    protected: bool = False


class ChangeType(StrEnum):
    """How a path differs between a snapshot and the live subvolume."""

    ADDED = "added"  # Exists live, not in the snapshot
    REMOVED = "removed"  # Exists in the snapshot, gone live
    MODIFIED = "modified"


@dataclass(frozen=True)
class PathChange:
    """One changed path reported by a diff."""

    path: str
    change: ChangeType


@dataclass(frozen=True)
class UsageStats:
    """Store usage for the filesystem backing a subvolume."""

    used_percent: int
    free_bytes: int


@dataclass(frozen=True)
class RetentionPolicy:
    """Per-subvolume retention configuration."""

    limits: dict[Tier, int] = field(default_factory=dict, hash=False)
    min_age: int = 1800  # Seconds
    number_limit: int = 50
    warn_threshold: int = 70  # Used percent
    critical_threshold: int = 80

    def limit(self, tier: Tier) -> int:
        """Limit for a tier; tiers missing from the config keep nothing."""
        return self.limits.get(tier, 0)


@dataclass(frozen=True)
class ScheduleEntry:
    """One calendar entry: fire `tier` for `subvolume` whenever `cron` matches."""

    subvolume: str
    tier: Tier
    cron: str


@dataclass
class ReconcileResult:
    """Outcome of one Retention Engine pass."""

    kept: list[Snapshot] = field(default_factory=list)
    deleted: list[Snapshot] = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


class AlertLevel(StrEnum):
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Alert:
    level: AlertLevel
    message: str


@dataclass(frozen=True)
class HealthReport:
    """Monitor output for one subvolume."""

    subvolume: str
    used_percent: int
    free_bytes: int
    snapshot_count: int
    oldest_snapshot_age: float | None  # Seconds, None when there are no snapshots
    tier_counts: dict[Tier, int] = field(default_factory=dict, hash=False)
    alerts: tuple[Alert, ...] = ()
    error: str | None = None  # Set when the store could not be read

    @classmethod
    def unreadable(cls, subvolume: str, error: str) -> HealthReport:
        """Placeholder report for a subvolume whose store could not be read."""
        return cls(
            subvolume=subvolume,
            used_percent=0,
            free_bytes=0,
            snapshot_count=0,
            oldest_snapshot_age=None,
            alerts=(Alert(AlertLevel.CRITICAL, f"Cannot read store: {error}"),),
            error=error,
        )

    @property
    def highest_alert(self) -> AlertLevel | None:
        levels = {alert.level for alert in self.alerts}
        if AlertLevel.CRITICAL in levels:
            return AlertLevel.CRITICAL
        if AlertLevel.WARNING in levels:
            return AlertLevel.WARNING
        return None


class RestoreState(StrEnum):
    """Restore session lifecycle."""

    BROWSING = "browsing"
    DIFF_REVIEWED = "diff-reviewed"
    SAFETY_SNAPSHOT_TAKEN = "safety-snapshot-taken"
    RESTORING = "restoring"
    COMPLETED = "completed"
    PARTIALLY_FAILED = "partially-failed"


@dataclass(frozen=True)
class PathRestoreResult:
    """Result of restoring a single path."""

    path: str
    error: Exception | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class RestoreResult:
    """Outcome of a restore session."""

    snapshot_id: int
    safety_snapshot: Snapshot
    state: RestoreState
    paths: list[PathRestoreResult] = field(default_factory=list)

    @property
    def failed(self) -> list[PathRestoreResult]:
        return [result for result in self.paths if not result.success]
