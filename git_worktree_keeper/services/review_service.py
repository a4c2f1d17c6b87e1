"""Review-status providers: where a branch's pull request state comes from."""

import json
import os
import shutil
import subprocess
from threading import Lock
from typing import Optional, TYPE_CHECKING, Union

from github import Auth, Github

from git_worktree_keeper.exceptions import UnsupportedRemoteError
from git_worktree_keeper.models.branch import BranchStatus, PRInfo
from git_worktree_keeper.logging_config import get_logger

if TYPE_CHECKING:
    from github.Repository import Repository
    from git_worktree_keeper.config import Config
    from git_worktree_keeper.services.git.operations import GitOperations

logger = get_logger(__name__)


class ReviewProvider:
    """Answers "what is the review state of this branch?".

    ``fetch`` never raises: any failure is reported as an empty PRInfo
    (no verdict) so the resolver falls through to the local checks.
    """

    name = "none"

    def is_available(self) -> bool:
        return False

    def fetch(self, path: str, branch: str) -> PRInfo:
        return PRInfo()

    def close(self) -> None:
        pass


class GhCliReviewProvider(ReviewProvider):
    """Queries the GitHub CLI: ``gh pr view <branch> --json state,assignees``."""

    name = "gh"

    def __init__(self, gh_path: Optional[str] = None):
        # Looked up once; a missing gh disables the tier for this instance
        self.gh_path = gh_path if gh_path is not None else shutil.which("gh")

    def is_available(self) -> bool:
        return bool(self.gh_path)

    def fetch(self, path: str, branch: str) -> PRInfo:
        if not self.gh_path:
            return PRInfo()
        try:
            result = subprocess.run(
                [self.gh_path, "pr", "view", branch, "--json", "state,assignees"],
                cwd=path,
                capture_output=True,
                text=True,
                stdin=subprocess.DEVNULL,
                check=False,
            )
        except OSError as e:
            logger.debug(f"[gh] Could not run gh for {branch}: {e}")
            return PRInfo()

        if result.returncode != 0:
            logger.debug(f"[gh] No PR for {branch}: {result.stderr.strip()}")
            return PRInfo()
        return parse_gh_pr_view(result.stdout)


def parse_gh_pr_view(output: str) -> PRInfo:
    """PRInfo from ``gh pr view --json state,assignees`` output."""
    try:
        data = json.loads(output)
    except (json.JSONDecodeError, TypeError) as e:
        logger.debug(f"[gh] Unparseable response: {e}")
        return PRInfo()
    if not isinstance(data, dict):
        return PRInfo()

    assignees = tuple(
        a.get("login") for a in data.get("assignees") or []
        if isinstance(a, dict) and a.get("login")
    )
    return PRInfo(status=BranchStatus.from_review_state(str(data.get("state", ""))), assignees=assignees)


class GitHubApiReviewProvider(ReviewProvider):
    """Queries the GitHub REST API through PyGithub.

    Used when a token is configured, which avoids depending on an
    authenticated ``gh`` on the host.
    """

    name = "api"

    def __init__(self, remote_url: str, token: Optional[str]):
        self.remote_url = remote_url
        self.github_token = token
        self.github_repo: Optional[str] = None
        self.github: Optional[Github] = None
        self.gh_repo: Optional["Repository"] = None
        self._setup_lock = Lock()
        self._setup_failed = False

    def is_available(self) -> bool:
        return bool(self.github_token) and "github.com" in (self.remote_url or "")

    def setup_github_api(self) -> None:
        """Connect and look up the repository (raises on failure)."""
        from git_worktree_keeper.services.path_planner import parse_remote_url

        _, org, repo = parse_remote_url(self.remote_url)
        self.github_repo = f"{org}/{repo}"

        assert self.github_token is not None, "GitHub token must be set"
        self.github = Github(auth=Auth.Token(self.github_token))
        self.gh_repo = self.github.get_repo(self.github_repo)
        logger.debug(f"[GitHub] GitHub integration enabled for: {self.github_repo}")

    def _ensure_repo(self) -> bool:
        """Set up the API once per provider; a failed setup is not retried."""
        with self._setup_lock:
            if self.gh_repo is not None:
                return True
            if self._setup_failed:
                return False
            try:
                self.setup_github_api()
            except Exception as e:
                self._setup_failed = True
                logger.info(f"[GitHub] GitHub integration disabled: {e}")
                return False
            return True

    def fetch(self, path: str, branch: str) -> PRInfo:
        if not self._ensure_repo():
            return PRInfo()
        try:
            assert self.gh_repo is not None
            assert self.github_repo is not None

            org_name = self.github_repo.split("/")[0]
            pulls = list(self.gh_repo.get_pulls(state="all", head=f"{org_name}:{branch}"))
            if not pulls:
                return PRInfo()

            latest = max(pulls, key=lambda pr: pr.created_at)
            if latest.merged:
                state = "MERGED"
            elif latest.state == "closed":
                state = "CLOSED"
            else:
                state = "OPEN"
            assignees = tuple(a.login for a in (latest.assignees or []) if a.login)
            logger.debug(f"[GitHub] Branch {branch} has PR #{latest.number} ({state})")
            return PRInfo(status=BranchStatus.from_review_state(state), assignees=assignees)
        except Exception as e:
            logger.debug(f"[GitHub] Error fetching PRs for branch {branch}: {e}")
            return PRInfo()

    def close(self) -> None:
        """Close the GitHub API connection to clean up resources."""
        if self.github:
            try:
                self.github.close()
                logger.debug("[GitHub] Closed GitHub API connection")
            except Exception as e:
                logger.debug(f"[GitHub] Error closing GitHub API connection: {e}")


def create_review_provider(
    config: Union["Config", dict], git_ops: "GitOperations", cwd: Optional[str] = None
) -> ReviewProvider:
    """Pick the review provider for this invocation.

    ``review_provider`` = auto prefers the API when a token and a github.com
    origin exist, then falls back to the gh CLI.
    """
    choice = config.get("review_provider", "auto")
    if choice == "none":
        return ReviewProvider()

    if choice in ("auto", "api"):
        token = config.get("github_token") or os.environ.get("GITHUB_TOKEN")
        remote_url = git_ops.remote_url(cwd)
        if remote_url and token:
            provider = GitHubApiReviewProvider(remote_url, token)
            try:
                if provider.is_available():
                    return provider
            except UnsupportedRemoteError as e:
                logger.debug(f"[GitHub] {e}")
        if choice == "api":
            logger.info("[GitHub] API provider unavailable (no token or non-GitHub origin)")
            return ReviewProvider()

    return GhCliReviewProvider()
