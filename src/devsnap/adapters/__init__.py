"""Filesystem adapters: the only code that touches the snapshot store."""

from __future__ import annotations

from .base import FilesystemAdapter, submit_request
from .memory import InMemoryAdapter
from .snapper import SnapperAdapter

__all__ = [
    "FilesystemAdapter",
    "InMemoryAdapter",
    "SnapperAdapter",
    "submit_request",
]
