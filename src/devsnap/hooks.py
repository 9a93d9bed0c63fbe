"""Event Hook Dispatcher: snapshots around VCS operations.

Fail-open: whatever happens while taking the snapshot, `on_vcs_event`
returns normally so the commit, rebase or checkout it is attached to
proceeds. Every failure is logged exactly once.
"""

from __future__ import annotations

import asyncio

from devsnap.adapters import FilesystemAdapter, submit_request
from devsnap.errors import HookTimeoutError, SnapshotError
from devsnap.logger import get_logger
from devsnap.models import SnapshotRequest, VcsEvent

__all__ = ["HookDispatcher"]

logger = get_logger("devsnap.hooks")


class HookDispatcher:
    """Turns VCS events into hook snapshots of one subvolume."""

    def __init__(
        self,
        adapter: FilesystemAdapter,
        subvolume: str,
        timeout: float = 10.0,
        skip_during_rebase: bool = True,
    ) -> None:
        """Initialize dispatcher.

        Args:
            adapter: Filesystem adapter used to create the snapshot
            subvolume: Subvolume holding the repositories (usually "home")
            timeout: Deadline in seconds for the whole snapshot creation
            skip_during_rebase: Ignore pre-commit events fired by the commits a
                rebase replays; the rebase already has its own snapshot
        """
        self._adapter = adapter
        self._subvolume = subvolume
        self._timeout = timeout
        self._skip_during_rebase = skip_during_rebase

    def build_request(
        self,
        event: VcsEvent,
        repo_name: str,
        before_ref: str,
        after_ref: str,
        reflog_action: str | None = None,
    ) -> SnapshotRequest | None:
        """Request for an event, or None when the event does not warrant a snapshot."""
        if event == VcsEvent.POST_CHECKOUT and before_ref == after_ref:
            return None
        if event == VcsEvent.PRE_COMMIT and reflog_action and self._skip_during_rebase:
            return None
        return SnapshotRequest(
            subvolume=self._subvolume,
            kind=event.kind,
            description=f"git-{event.value}-{repo_name}",
            tags={"repo": repo_name, "ref": f"{before_ref}->{after_ref}"},
        )

    async def on_vcs_event(
        self,
        event_type: VcsEvent | str,
        repo_name: str,
        before_ref: str,
        after_ref: str,
        reflog_action: str | None = None,
    ) -> SnapshotRequest | None:
        """Handle one VCS event. Never raises.

        Args:
            event_type: "pre-commit", "pre-rebase" or "post-checkout"
            repo_name: Repository name, used as the "repo" tag
            before_ref: Ref before the operation
            after_ref: Ref after the operation (same as before_ref for pre-* events)
            reflog_action: Value of GIT_REFLOG_ACTION, set while git replays commits

        Returns:
            The issued request, or None if the event was ignored. The request
            is returned even when creating the snapshot failed; the outcome
            is advisory and only visible in the log.
        """
        log = logger.bind(vcs_event=str(event_type), repo=repo_name, subvolume=self._subvolume)
        try:
            event = VcsEvent(event_type)
        except ValueError:
            log.warning("Ignoring unknown VCS event")
            return None

        request = self.build_request(event, repo_name, before_ref, after_ref, reflog_action)
        if request is None:
            log.debug("No snapshot needed for event", before_ref=before_ref, after_ref=after_ref)
            return None

        try:
            snapshot = await asyncio.wait_for(submit_request(self._adapter, request), timeout=self._timeout)
        except TimeoutError:
            error = HookTimeoutError(f"Hook snapshot did not finish within {self._timeout}s")
            log.warning("Hook snapshot timed out, continuing", error=str(error), error_kind=error.kind_name)
        except SnapshotError as e:
            log.warning("Hook snapshot failed, continuing", error=str(e), error_kind=e.kind_name)
        except Exception as e:
            log.error("Unexpected error in hook snapshot, continuing", error=str(e), exc_info=True)
        else:
            log.info("Created hook snapshot", snapshot_id=snapshot.id, kind=snapshot.kind.value)
        return request
