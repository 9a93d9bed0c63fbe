"""Policy Store: per-subvolume retention configuration."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from pytimeparse2 import parse as parse_duration_seconds

from devsnap.errors import PolicyError
from devsnap.models import RetentionPolicy

if TYPE_CHECKING:
    from devsnap.config import Configuration

__all__ = [
    "PolicyStore",
    "parse_duration",
]


def parse_duration(value: int | str) -> int:
    """Parse a duration to whole seconds.

    Args:
        value: Integer seconds, or a human-readable duration ("30m", "1h", "2 days")

    Returns:
        Number of seconds

    Raises:
        ValueError: If the duration format is invalid

    Examples:
        >>> parse_duration(900)
        900
        >>> parse_duration("30m")
        1800
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Duration must not be negative: {value}")
        return value
    seconds = parse_duration_seconds(value)
    if seconds is None:
        raise ValueError(f"Invalid duration format: {value}")
    # pytimeparse2 returns int, float, or timedelta - convert to total seconds first
    total_seconds = seconds.total_seconds() if isinstance(seconds, timedelta) else float(seconds)
    if total_seconds < 0:
        raise ValueError(f"Duration must not be negative: {value}")
    return int(total_seconds)


class PolicyStore:
    """Lookup of retention policies by subvolume name."""

    def __init__(self, policies: dict[str, RetentionPolicy]) -> None:
        self._policies = dict(policies)

    @classmethod
    def from_configuration(cls, config: Configuration) -> PolicyStore:
        return cls({name: sv.retention for name, sv in config.subvolumes.items()})

    def get(self, subvolume: str) -> RetentionPolicy:
        """Return the policy for a subvolume.

        Raises:
            PolicyError: If the subvolume has no policy configured
        """
        try:
            return self._policies[subvolume]
        except KeyError:
            known = ", ".join(sorted(self._policies)) or "none"
            raise PolicyError(f"No retention policy for subvolume '{subvolume}' (configured: {known})") from None

    def subvolumes(self) -> list[str]:
        return sorted(self._policies)

    def __contains__(self, subvolume: object) -> bool:
        return subvolume in self._policies
