"""Git integration: ref resolution for hook events and hook installation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from devsnap.executor import Executor, LocalExecutor
from devsnap.logger import get_logger
from devsnap.models import VcsEvent

__all__ = [
    "HOOK_MARKER",
    "InstalledHook",
    "hook_script",
    "install_hooks",
    "resolve_event_refs",
    "resolve_repo_name",
]

logger = get_logger("devsnap.vcs")

GIT_TIMEOUT = 5.0

# Identifies scripts written by install_hooks; those are replaced without a backup
HOOK_MARKER = "# Installed by devsnap"

_HOOK_BODIES: dict[VcsEvent, str] = {
    VcsEvent.PRE_COMMIT: '{command} hook pre-commit || true\n',
    VcsEvent.PRE_REBASE: '{command} hook pre-rebase "$@" || true\n',
    # $3 is 1 for a branch checkout, 0 for a file checkout
    VcsEvent.POST_CHECKOUT: '[ "$3" = "1" ] || exit 0\n{command} hook post-checkout "$1" "$2" || true\n',
}


@dataclass(frozen=True)
class InstalledHook:
    """A hook script written into a repository."""

    event: VcsEvent
    path: Path
    backup: Path | None = None


async def _git(executor: Executor, *args: str) -> str | None:
    """Run a git command; returns stripped stdout, or None if it failed."""
    try:
        result = await executor.run_command(["git", *args], timeout=GIT_TIMEOUT)
    except (OSError, TimeoutError) as e:
        logger.debug("git command failed", args=list(args), error=str(e))
        return None
    if not result.success:
        logger.debug("git command failed", args=list(args), stderr=result.stderr.strip())
        return None
    return result.stdout.strip()


async def resolve_repo_name(executor: Executor | None = None, cwd: Path | None = None) -> str:
    """Name of the repository containing the working directory.

    Falls back to the directory name when git cannot answer.
    """
    toplevel = await _git(executor or LocalExecutor(), "rev-parse", "--show-toplevel")
    if toplevel:
        return Path(toplevel).name
    return (cwd or Path.cwd()).name


async def resolve_event_refs(
    event: VcsEvent,
    hook_args: list[str],
    executor: Executor | None = None,
) -> tuple[str, str]:
    """Derive (before_ref, after_ref) from the arguments git passes to a hook.

    - pre-commit: no arguments; both refs are the current branch
    - pre-rebase: upstream [branch]; before is the branch being rebased, after the upstream
    - post-checkout: previous HEAD, new HEAD
    """
    executor = executor or LocalExecutor()

    if event == VcsEvent.POST_CHECKOUT and len(hook_args) >= 2:
        return hook_args[0], hook_args[1]

    branch = await _git(executor, "rev-parse", "--abbrev-ref", "HEAD") or "HEAD"
    if event == VcsEvent.PRE_REBASE and hook_args:
        rebased = hook_args[1] if len(hook_args) > 1 else branch
        return rebased, hook_args[0]
    return branch, branch


def hook_script(event: VcsEvent, command: str = "snapshot") -> str:
    """Shell script for one hook. The script always exits 0."""
    body = _HOOK_BODIES[event].format(command=command)
    return f"#!/bin/sh\n{HOOK_MARKER}: snapshot on {event.value}, never blocks git\n{body}exit 0\n"


def install_hooks(
    repo_path: Path,
    command: str = "snapshot",
    now: datetime | None = None,
) -> list[InstalledHook]:
    """Write pre-commit, pre-rebase and post-checkout hooks into a repository.

    A pre-existing hook not written by devsnap is kept as
    `<hook>.backup-<YYYYmmdd-HHMMSS>`.

    Args:
        repo_path: Repository working tree (containing .git/)
        command: How the hook scripts invoke the devsnap CLI
        now: Timestamp for backup names (defaults to current time)

    Returns:
        One InstalledHook per written script

    Raises:
        FileNotFoundError: If repo_path has no .git/hooks directory
    """
    hooks_dir = repo_path / ".git" / "hooks"
    if not hooks_dir.is_dir():
        raise FileNotFoundError(f"Not a git repository (no {hooks_dir})")

    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    installed: list[InstalledHook] = []
    for event in VcsEvent:
        hook_path = hooks_dir / event.value
        backup: Path | None = None
        if hook_path.exists() and HOOK_MARKER not in hook_path.read_text(errors="replace"):
            backup = hook_path.with_name(f"{hook_path.name}.backup-{stamp}")
            hook_path.rename(backup)
            logger.info("Backed up existing hook", hook=event.value, backup=str(backup))
        hook_path.write_text(hook_script(event, command))
        hook_path.chmod(0o755)
        installed.append(InstalledHook(event=event, path=hook_path, backup=backup))

    logger.info("Installed git hooks", repo=repo_path.name, count=len(installed))
    return installed
