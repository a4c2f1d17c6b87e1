"""Background status loading for the worktree picker."""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional

from git_worktree_keeper.constants import STATUS_LOADING
from git_worktree_keeper.models.collection import WorktreeCollection
from git_worktree_keeper.models.worktree import Worktree, WorktreeEntry
from git_worktree_keeper.services.branch_status_service import BranchStatusResolver
from git_worktree_keeper.utils.paths import same_path
from git_worktree_keeper.utils.threading import get_optimal_worker_count
from git_worktree_keeper.logging_config import get_logger

logger = get_logger(__name__)


def build_entries(
    worktrees: List[Worktree],
    primary_path: Optional[str],
    current_path: Optional[str] = None,
    skip: Optional[Callable[[Worktree], bool]] = None,
) -> List[WorktreeEntry]:
    """Picker entries in listing order.

    Entries that will be resolved start as LOADING; the primary worktree and
    detached worktrees start (and stay) blank.
    """
    entries = []
    for wt in worktrees:
        if skip is not None and skip(wt):
            continue
        is_primary = same_path(wt.path, primary_path)
        initial = "" if is_primary or wt.is_detached else STATUS_LOADING
        entries.append(WorktreeEntry(
            wt,
            is_primary=is_primary,
            is_current=same_path(wt.path, current_path),
            initial_status=initial,
        ))
    return entries


class StatusLoader:
    """Handle on one running status load."""

    def __init__(self, collection: WorktreeCollection):
        self.collection = collection
        self._thread: Optional[threading.Thread] = None
        self._finished = threading.Event()
        self.errors: List[Exception] = []

    @property
    def done(self) -> bool:
        return self._finished.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until every task has finished and the collection is settled."""
        return self._finished.wait(timeout)


class StatusRefreshCoordinator:
    """Resolves every eligible entry's status with bounded concurrency.

    Results land in the entries as they arrive; each change pokes the
    collection so the picker redraws. ``start_loader`` never blocks.
    """

    def __init__(self, workers: Optional[int] = None):
        self.max_workers = get_optimal_worker_count(workers)

    @staticmethod
    def is_eligible(entry: WorktreeEntry) -> bool:
        return not entry.is_primary and not entry.worktree.is_detached

    def start_loader(self, collection: WorktreeCollection, resolver: BranchStatusResolver) -> StatusLoader:
        """Start resolving in the background and return immediately."""
        loader = StatusLoader(collection)
        thread = threading.Thread(
            target=self._run, args=(loader, resolver), name="status-loader", daemon=True
        )
        loader._thread = thread
        thread.start()
        return loader

    def _run(self, loader: StatusLoader, resolver: BranchStatusResolver) -> None:
        collection = loader.collection
        try:
            entries = [e for e in collection.base if self.is_eligible(e)]
            logger.debug(f"Resolving {len(entries)} statuses with {self.max_workers} workers")
            if entries:
                with ThreadPoolExecutor(max_workers=self.max_workers,
                                        thread_name_prefix="status") as executor:
                    future_to_entry = {
                        executor.submit(self._resolve_entry, collection, resolver, entry): entry
                        for entry in entries
                    }
                    for future in as_completed(future_to_entry):
                        entry = future_to_entry[future]
                        try:
                            future.result()
                        except Exception as e:
                            logger.error(f"Error resolving status of {entry.display_branch}: {e}")
                            loader.errors.append(e)
        finally:
            collection.finalize()
            loader._finished.set()

    def _resolve_entry(self, collection: WorktreeCollection, resolver: BranchStatusResolver,
                       entry: WorktreeEntry) -> None:
        info = resolver.status_info(entry.path, entry.raw_branch)
        changed = False

        status = info.status.display()
        if status != entry.status:
            entry.status = status
            changed = True

        if ",".join(info.assignees) != entry.assignees_display:
            entry.assignees = info.assignees
            changed = True

        if changed:
            collection.trigger_reload()
