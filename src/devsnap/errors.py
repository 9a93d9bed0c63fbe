"""Error taxonomy for snapshot operations.

Propagation differs by caller: the Scheduler and Hook Dispatcher downgrade
every error to a logged no-op, the Retention Engine collects per-snapshot
errors, and the Restore Orchestrator surfaces them to the operator.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

__all__ = [
    "ConcurrencyError",
    "ConfigError",
    "ConfigurationError",
    "FilesystemError",
    "FilesystemErrorKind",
    "HookTimeoutError",
    "NotFoundError",
    "PolicyError",
    "RestoreRefusedError",
    "SnapshotError",
]


class SnapshotError(Exception):
    """Base class for all devsnap errors."""

    kind_name = "error"


class PolicyError(SnapshotError):
    """Malformed or missing retention configuration."""

    kind_name = "policy"


@dataclass(frozen=True)
class ConfigError:
    """A single problem found while loading or validating the config file."""

    path: str  # JSON path to invalid value
    message: str


class ConfigurationError(PolicyError):
    """Raised when configuration loading or validation fails."""

    kind_name = "config"

    def __init__(self, errors: list[ConfigError]) -> None:
        self.errors = errors
        messages = [f"{e.path}: {e.message}" for e in errors]
        super().__init__("Configuration validation failed:\n" + "\n".join(messages))


class FilesystemErrorKind(StrEnum):
    BUSY = "busy"
    FULL = "full"
    PERMISSION = "permission"
    IO = "io"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class FilesystemError(SnapshotError):
    """A store call failed. Retryable for creation and deletion."""

    kind_name = "filesystem"

    def __init__(
        self,
        message: str,
        kind: FilesystemErrorKind = FilesystemErrorKind.UNKNOWN,
        snapshot_id: int | None = None,
        path: str | None = None,
    ) -> None:
        self.kind = kind
        self.snapshot_id = snapshot_id
        self.path = path
        super().__init__(message)

    def __str__(self) -> str:
        where = []
        if self.snapshot_id is not None:
            where.append(f"snapshot {self.snapshot_id}")
        if self.path is not None:
            where.append(f"path {self.path}")
        suffix = f" ({', '.join(where)})" if where else ""
        return f"[{self.kind.value}] {self.args[0]}{suffix}"


class NotFoundError(SnapshotError):
    """Unknown snapshot id."""

    kind_name = "not-found"

    def __init__(self, snapshot_id: int, subvolume: str | None = None) -> None:
        self.snapshot_id = snapshot_id
        self.subvolume = subvolume
        where = f" in {subvolume}" if subvolume else ""
        super().__init__(f"Snapshot {snapshot_id} not found{where}")


class ConcurrencyError(SnapshotError):
    """Lost a benign race, e.g. the snapshot was already deleted by someone else."""

    kind_name = "concurrency"


class HookTimeoutError(SnapshotError):
    """A hook invocation exceeded its deadline."""

    kind_name = "hook-timeout"


class RestoreRefusedError(SnapshotError):
    """A restore step was not permitted in the current state."""

    kind_name = "restore-refused"
