"""Disk space utilities."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "DiskSpace",
    "format_bytes",
    "parse_df_output",
]


@dataclass(frozen=True)
class DiskSpace:
    """Disk space information for a mount point."""

    total_bytes: int
    used_bytes: int
    available_bytes: int
    use_percent: int
    mount_point: str


def parse_df_output(output: str, mount_point: str) -> DiskSpace | None:
    """Parse `df -B1` output for a specific mount point.

    Args:
        output: Raw stdout from `df -B1` command
        mount_point: Mount point to search for (e.g., "/home")

    Returns:
        DiskSpace if mount point found, None otherwise
    """
    for line in output.strip().split("\n")[1:]:  # Skip header
        parts = line.split()
        if len(parts) >= 6 and parts[5] == mount_point:
            return DiskSpace(
                total_bytes=int(parts[1]),
                used_bytes=int(parts[2]),
                available_bytes=int(parts[3]),
                use_percent=int(parts[4].rstrip("%")),
                mount_point=parts[5],
            )
    return None


def format_bytes(bytes_value: int) -> str:
    """Format bytes as human-readable string.

    Args:
        bytes_value: Number of bytes

    Returns:
        Formatted string like "45.2 GiB"
    """
    if bytes_value >= 2**40:
        return f"{bytes_value / 2**40:.1f} TiB"
    if bytes_value >= 2**30:
        return f"{bytes_value / 2**30:.1f} GiB"
    if bytes_value >= 2**20:
        return f"{bytes_value / 2**20:.1f} MiB"
    if bytes_value >= 2**10:
        return f"{bytes_value / 2**10:.1f} KiB"
    return f"{bytes_value} B"
