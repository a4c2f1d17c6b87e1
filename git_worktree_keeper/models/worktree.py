"""Worktree data models."""

import threading
from dataclasses import dataclass
from typing import Tuple

from git_worktree_keeper.constants import DETACHED_LABEL, DETACHED_MARKER


@dataclass(frozen=True)
class Worktree:
    """A worktree as reported by `git worktree list --porcelain`.

    ``branch`` is empty or "HEAD" when the worktree is detached.
    """

    path: str
    branch: str = ""

    @property
    def is_detached(self) -> bool:
        return self.branch in ("", DETACHED_MARKER)

    def __str__(self) -> str:
        return f"{self.branch or DETACHED_LABEL} @ {self.path}"


class WorktreeEntry:
    """Picker row for one worktree.

    ``status`` and ``assignees`` are written by loader threads and read by the
    render path; each has its own lock so one slow reader never blocks a
    writer on a different field or entry.
    """

    def __init__(self, worktree: Worktree, is_primary: bool = False, is_current: bool = False,
                 initial_status: str = ""):
        self.worktree = worktree
        self.is_primary = is_primary
        self.is_current = is_current
        self._status = initial_status
        self._assignees: Tuple[str, ...] = ()
        self._status_lock = threading.Lock()
        self._assignees_lock = threading.Lock()

    @property
    def path(self) -> str:
        return self.worktree.path

    @property
    def raw_branch(self) -> str:
        return self.worktree.branch

    @property
    def display_branch(self) -> str:
        return DETACHED_LABEL if self.worktree.is_detached else self.worktree.branch

    @property
    def status(self) -> str:
        with self._status_lock:
            return self._status

    @status.setter
    def status(self, value: str) -> None:
        with self._status_lock:
            self._status = value

    @property
    def assignees(self) -> Tuple[str, ...]:
        with self._assignees_lock:
            return self._assignees

    @assignees.setter
    def assignees(self, value) -> None:
        with self._assignees_lock:
            self._assignees = tuple(value)

    @property
    def assignees_display(self) -> str:
        return ",".join(self.assignees)

    def __repr__(self) -> str:
        return f"WorktreeEntry({self.display_branch!r}, status={self.status!r})"


@dataclass(frozen=True)
class RelocationPlan:
    """Everything `mv` decides before touching the repository."""

    old_path: str
    new_path: str
    old_branch: str
    new_branch: str
    same_path: bool
    caller_subpath: str = "."  # caller's cwd relative to old_path; "." if outside
