"""Service for determining the status of a worktree's branch"""

from threading import Lock
from typing import Dict, Optional, Union, TYPE_CHECKING

from git_worktree_keeper.constants import DETACHED_MARKER
from git_worktree_keeper.exceptions import GitOperationError
from git_worktree_keeper.models.branch import BranchStatus, PRInfo
from git_worktree_keeper.services.git.operations import GitOperations
from git_worktree_keeper.services.review_service import ReviewProvider
from git_worktree_keeper.logging_config import get_logger

if TYPE_CHECKING:
    from git_worktree_keeper.config import Config

logger = get_logger(__name__)


class BranchStatusResolver:
    """Resolves a branch's status, caching review verdicts per branch.

    Resolution order: review verdict (merged / closed / opened), then a dirty
    working tree, then commits ahead of the base ref, then "not started".
    One resolver lives for one command invocation; its cache is never
    persisted.
    """

    def __init__(
        self,
        git_ops: GitOperations,
        provider: Optional[ReviewProvider] = None,
        config: Optional[Union["Config", dict]] = None,
        base_ref: Optional[str] = None,
    ):
        """Initialize the resolver.

        Args:
            git_ops: Git command wrapper bound to the repository
            provider: Review-status source; None disables the review tier
            config: Configuration (only ``debug`` is read)
            base_ref: Reference for the ahead check; detected when omitted
        """
        self.git_ops = git_ops
        self.config = config or {}
        self.debug_mode = self.config.get("debug", False)

        # Provider availability is decided once for the resolver's lifetime
        self.provider = provider if provider is not None and provider.is_available() else None
        if self.provider is None:
            logger.debug("No review provider available; skipping review verdicts")

        self.base_ref = base_ref if base_ref is not None else git_ops.detect_base_ref()
        self._base_ref_valid: Optional[bool] = None
        logger.debug(f"Base ref for ahead checks: {self.base_ref or '(none)'}")

        self._cache: Dict[str, PRInfo] = {}
        self._cache_lock = Lock()

    def review_info(self, path: str, branch: str) -> PRInfo:
        """Review verdict for ``branch``, from cache when already asked."""
        with self._cache_lock:
            cached = self._cache.get(branch)
        if cached is not None:
            return cached

        info = self.provider.fetch(path, branch) if self.provider else PRInfo()

        with self._cache_lock:
            # First writer wins; concurrent lookups of one branch agree
            info = self._cache.setdefault(branch, info)
        return info

    def status_info(self, path: str, branch: str) -> PRInfo:
        """Status plus assignees for the worktree at ``path``."""
        if not branch or branch == DETACHED_MARKER:
            return PRInfo()

        review = self.review_info(path, branch)
        if review.has_verdict:
            logger.debug(f"Branch {branch} has review verdict {review.status.value}")
            return review

        try:
            if self.git_ops.has_working_changes(path):
                logger.debug(f"Branch {branch} has uncommitted changes")
                return PRInfo(BranchStatus.IN_PROGRESS, review.assignees)
        except GitOperationError as e:
            logger.debug(f"Could not check working tree of {path}: {e}")
            return PRInfo(BranchStatus.UNKNOWN, review.assignees)

        if self.has_commits_ahead(path):
            logger.debug(f"Branch {branch} is ahead of {self.base_ref}")
            return PRInfo(BranchStatus.IN_PROGRESS, review.assignees)

        return PRInfo(BranchStatus.NOT_STARTED, review.assignees)

    def status(self, path: str, branch: str) -> BranchStatus:
        """Status of the worktree at ``path`` on ``branch``."""
        return self.status_info(path, branch).status

    def has_commits_ahead(self, path: str) -> bool:
        """True if HEAD at ``path`` has commits the base ref lacks.

        A missing or unverifiable base ref, or any git failure, counts as
        "not ahead".
        """
        if not self.base_ref:
            return False
        if self._base_ref_valid is None:
            self._base_ref_valid = self.git_ops.verify_ref(self.base_ref, cwd=path)
        if not self._base_ref_valid:
            return False
        try:
            return self.git_ops.commits_ahead(path, self.base_ref) > 0
        except (GitOperationError, ValueError) as e:
            logger.debug(f"Could not count commits ahead in {path}: {e}")
            return False

    def close(self) -> None:
        if self.provider:
            self.provider.close()
