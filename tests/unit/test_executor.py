"""Tests for LocalExecutor."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import pytest

from devsnap.executor import LocalExecutor


def test_sudo_prefix() -> None:
    assert LocalExecutor(sudo=True)._argv(["snapper", "list"]) == ["sudo", "-n", "snapper", "list"]
    assert LocalExecutor()._argv("df -B1 '/home dir'") == ["df", "-B1", "/home dir"]


async def _wait_for_pid(pid_file: Path) -> int:
    for _ in range(100):
        if pid_file.exists() and pid_file.read_text().strip():
            return int(pid_file.read_text())
        await asyncio.sleep(0.05)
    raise AssertionError("child process never wrote its pid")


def _is_running(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    return True


@pytest.mark.asyncio
class TestLocalExecutor:
    async def test_stdout_and_exit_code(self) -> None:
        result = await LocalExecutor().run_command(["echo", "hello"])

        assert result.success
        assert result.stdout == "hello\n"
        assert result.stderr == ""

    async def test_failure_exit_code(self) -> None:
        result = await LocalExecutor().run_command("sh -c 'echo oops >&2; exit 3'")

        assert result.exit_code == 3
        assert not result.success
        assert result.stderr.strip() == "oops"

    async def test_undecodable_output_is_replaced(self) -> None:
        result = await LocalExecutor().run_command(["sh", "-c", "printf 'caf\\351'; printf 'bad\\377' >&2"])

        assert result.stdout == "caf\ufffd"
        assert result.stderr == "bad\ufffd"

    async def test_timeout_raises(self) -> None:
        with pytest.raises(TimeoutError):
            await LocalExecutor().run_command(["sleep", "5"], timeout=0.1)

    async def test_timeout_terminates_child(self, tmp_path: Path) -> None:
        pid_file = tmp_path / "pid"
        argv = ["sh", "-c", 'echo $$ > "$1"; exec sleep 30', "sh", str(pid_file)]

        with pytest.raises(TimeoutError):
            await LocalExecutor().run_command(argv, timeout=1.0)

        assert not _is_running(int(pid_file.read_text()))

    async def test_cancellation_terminates_child(self, tmp_path: Path) -> None:
        pid_file = tmp_path / "pid"
        argv = ["sh", "-c", 'echo $$ > "$1"; exec sleep 30', "sh", str(pid_file)]
        task = asyncio.create_task(LocalExecutor().run_command(argv))
        pid = await _wait_for_pid(pid_file)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not _is_running(pid)

    async def test_missing_binary(self) -> None:
        with pytest.raises(FileNotFoundError):
            await LocalExecutor().run_command(["definitely-not-a-real-binary"])
