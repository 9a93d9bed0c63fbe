"""Tests for logging infrastructure."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path

from freezegun import freeze_time

from devsnap.config import Configuration
from devsnap.logger import (
    configure_logging,
    create_log_file_path,
    get_latest_log_file,
    get_logger,
    get_logs_directory,
)
from devsnap.models import LogLevel

_MINIMAL = {"subvolumes": {"home": {"snapper_config": "home", "mount_point": "/home"}}}


class TestLogLevelRegistration:
    def test_full_level_is_registered(self) -> None:
        assert logging.getLevelName(15) == "FULL"
        assert LogLevel.FULL == 15


class TestLogFilePaths:
    def test_logs_directory(self, isolated_home: Path) -> None:
        assert get_logs_directory() == isolated_home / ".local" / "share" / "devsnap" / "logs"

    def test_log_file_name(self) -> None:
        path = create_log_file_path("reconcile", datetime(2025, 6, 2, 10, 30, 5))

        assert path.name == "snapshot-20250602T103005-reconcile.log"

    @freeze_time("2025-06-02 10:30:05")
    def test_log_file_name_defaults_to_now(self) -> None:
        assert create_log_file_path("tick").name == "snapshot-20250602T103005-tick.log"

    def test_latest_log_file(self) -> None:
        assert get_latest_log_file() is None

        logs_dir = get_logs_directory()
        logs_dir.mkdir(parents=True)
        (logs_dir / "snapshot-20250601T000000-tick.log").write_text("")
        (logs_dir / "snapshot-20250602T000000-reconcile.log").write_text("")
        (logs_dir / "other.log").write_text("")

        assert get_latest_log_file() == logs_dir / "snapshot-20250602T000000-reconcile.log"


class TestConfigureLogging:
    def test_file_receives_json_lines(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "run.log"
        configure_logging(LogLevel.FULL, LogLevel.CRITICAL, log_file)

        log = get_logger("devsnap.test", subvolume="home")
        log.info("Reconciled", deleted=2)
        log.debug("Hidden detail")
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert len(lines) == 1
        entry = lines[0]
        assert entry["event"] == "Reconciled"
        assert entry["level"] == "info"
        assert entry["logger"] == "devsnap.test"
        assert entry["subvolume"] == "home"
        assert entry["deleted"] == 2
        assert "timestamp" in entry
        assert "hostname" in entry

    def test_console_only(self) -> None:
        configure_logging(LogLevel.FULL, LogLevel.WARNING, None)

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == LogLevel.WARNING

    def test_default_file_level_keeps_per_snapshot_detail(self, tmp_path: Path) -> None:
        log_file = tmp_path / "run.log"
        configure_logging(Configuration.from_dict(_MINIMAL).log_file_level, LogLevel.CRITICAL, log_file)

        get_logger("devsnap.adapters.snapper").debug("Created snapshot", subvolume="home", snapshot_id=4)
        for handler in logging.getLogger().handlers:
            handler.flush()

        entry = json.loads(log_file.read_text())
        assert entry["event"] == "Created snapshot"
        assert entry["snapshot_id"] == 4
