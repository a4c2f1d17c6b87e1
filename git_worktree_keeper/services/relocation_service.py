"""Rename a worktree's branch and move its directory to match."""

import os
from typing import Callable, Optional

from rich.console import Console

from git_worktree_keeper.exceptions import (
    BranchMismatchError,
    DestinationExistsError,
    DetachedWorktreeProtectedError,
    GitOperationError,
    InvalidInputError,
    PrimaryWorktreeProtectedError,
)
from git_worktree_keeper.constants import DETACHED_MARKER
from git_worktree_keeper.models.worktree import RelocationPlan
from git_worktree_keeper.services.git.operations import GitOperations
from git_worktree_keeper.services.git.worktrees import WorktreeService
from git_worktree_keeper.services.path_planner import PathPlanner
from git_worktree_keeper.utils.paths import caller_cwd, relative_within, same_dir
from git_worktree_keeper.logging_config import get_logger

console = Console(stderr=True)
logger = get_logger(__name__)


class RelocationService:
    """Moves a worktree from one branch name to another.

    The move is a two-step saga: rename the branch inside the worktree, then
    move the directory to the path planned for the new name. If the directory
    move fails the rename is undone.
    """

    def __init__(self, git_ops: GitOperations, worktree_service: WorktreeService,
                 path_planner: PathPlanner, verbose: bool = True):
        self.git_ops = git_ops
        self.worktree_service = worktree_service
        self.path_planner = path_planner
        self.verbose = verbose

    def _say(self, message: str) -> None:
        logger.info(message)
        if self.verbose:
            console.print(message, highlight=False, soft_wrap=True)

    def plan(self, old_branch: str, new_branch: str, cwd: Optional[str] = None) -> RelocationPlan:
        """Validate the move and work out where everything goes.

        Nothing in the repository changes here.

        Raises:
            InvalidInputError: empty or identical branch names
            WorktreeNotFoundError: no worktree on ``old_branch``
            PrimaryWorktreeProtectedError: ``old_branch`` is the primary worktree
            DetachedWorktreeProtectedError: the worktree is not on a branch
            BranchMismatchError: the worktree is on a different branch
            DestinationExistsError: the new path is already occupied
        """
        if not old_branch or not new_branch:
            raise InvalidInputError("Both branch names required")
        if old_branch == new_branch:
            raise InvalidInputError("Branch names must differ")

        old_path = os.path.normpath(self.worktree_service.find_by_branch(old_branch))

        try:
            primary = self.git_ops.primary_worktree_path()
        except GitOperationError as e:
            logger.debug(f"Could not locate primary worktree: {e}")
            primary = None
        if primary and same_dir(primary, old_path):
            raise PrimaryWorktreeProtectedError(old_path)

        actual_branch = self.git_ops.branch_at(old_path)
        if not actual_branch or actual_branch == DETACHED_MARKER:
            raise DetachedWorktreeProtectedError(old_path)
        if actual_branch != old_branch:
            raise BranchMismatchError(old_branch, actual_branch)

        new_path = os.path.normpath(self.path_planner.compute_path(new_branch, cwd=old_path))
        same_path = same_dir(new_path, old_path)
        if not same_path:
            os.makedirs(os.path.dirname(new_path), exist_ok=True)
            if os.path.lexists(new_path):
                raise DestinationExistsError(new_path)

        caller = os.path.normpath(cwd or caller_cwd())
        subpath = relative_within(old_path, caller) or "."

        return RelocationPlan(
            old_path=old_path,
            new_path=old_path if same_path else new_path,
            old_branch=old_branch,
            new_branch=new_branch,
            same_path=same_path,
            caller_subpath=subpath,
        )

    def move(self, old_branch: str, new_branch: str, cwd: Optional[str] = None) -> str:
        """Carry out the move; returns the directory the caller should land in.

        Raises:
            RelocationError: see ``plan``
            GitOperationError: if the rename or the directory move fails
        """
        plan = self.plan(old_branch, new_branch, cwd)
        self.execute(plan)
        return self.landing_path(plan)

    def execute(self, plan: RelocationPlan) -> None:
        self.git_ops.rename_branch(plan.old_path, plan.new_branch)
        self._say(f"Renamed branch: {plan.old_branch} -> {plan.new_branch}")

        if plan.same_path:
            self.worktree_service.clear_cache()
            return

        try:
            self.git_ops.move_worktree(plan.old_path, plan.new_path)
        except GitOperationError:
            self._compensate(
                lambda: self.git_ops.rename_branch(plan.old_path, plan.old_branch),
                "Reverted branch rename because worktree move failed",
            )
            raise
        finally:
            self.worktree_service.clear_cache()
        self._say(f"Moved worktree: {plan.old_path} -> {plan.new_path}")

    def _compensate(self, action: Callable[[], None], message: str) -> None:
        """Run an undo step; its failure is logged, never raised."""
        try:
            action()
        except GitOperationError as e:
            logger.warning(f"Rollback failed: {e}")
            return
        self._say(message)

    @staticmethod
    def landing_path(plan: RelocationPlan) -> str:
        """New path, plus the caller's old subdirectory when it still exists."""
        if plan.caller_subpath != ".":
            candidate = os.path.join(plan.new_path, plan.caller_subpath)
            if os.path.isdir(candidate):
                return candidate
        return plan.new_path
