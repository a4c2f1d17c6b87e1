"""Pytest fixtures for git-worktree-keeper tests"""
import tempfile
from pathlib import Path
from unittest.mock import Mock
import pytest
import git

from git_worktree_keeper.config import Config
from git_worktree_keeper.models.branch import BranchStatus, PRInfo
from git_worktree_keeper.services.git import GitOperations
from git_worktree_keeper.services.path_planner import PathPlanner
from git_worktree_keeper.services.review_service import ReviewProvider


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def home_dir(temp_dir, monkeypatch):
    """Point HOME at a scratch directory so ~/.worktrees stays inside the test."""
    home = temp_dir / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("GWK_CALLER_CWD", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    return home


@pytest.fixture
def mock_config():
    """Create a mock configuration dictionary."""
    return {
        'verbose': False,
        'debug': False,
        'review_provider': 'none',
        'github_token': None,
        'hooks_background': False,
        'show_path': False,
        'workers': 4,
    }


@pytest.fixture
def config():
    """Config with review lookups disabled."""
    return Config(review_provider="none")


@pytest.fixture
def git_repo(home_dir):
    """Create a real Git repository (inside HOME) for testing."""
    repo_path = home_dir / "test_repo"
    repo_path.mkdir()

    # Initialize repository
    repo = git.Repo.init(repo_path)

    # Configure git user for commits
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    # Create initial commit on main branch
    test_file = repo_path / "README.md"
    test_file.write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    # Rename master to main if needed
    repo.git.branch('-M', 'main')

    # Add a fake GitHub remote for testing
    repo.create_remote('origin', 'git@github.com:test/test-repo.git')

    yield repo

    # Cleanup
    repo.close()


@pytest.fixture
def git_ops(git_repo):
    """GitOperations bound to the test repository."""
    return GitOperations(git_repo.working_dir)


@pytest.fixture
def add_worktree(git_repo, git_ops):
    """Factory creating a worktree on a new branch at its planned path."""
    planner = PathPlanner(git_ops)

    def _add(branch: str, commit: bool = False) -> str:
        path = planner.compute_path(branch)
        git_repo.git.worktree("add", path, "-b", branch)
        if commit:
            wt_repo = git.Repo(path)
            (Path(path) / f"{branch.replace('/', '_')}.txt").write_text("work\n")
            wt_repo.index.add([f"{branch.replace('/', '_')}.txt"])
            wt_repo.index.commit(f"Work on {branch}")
            wt_repo.close()
        return path

    return _add


@pytest.fixture
def mock_provider():
    """Review provider that answers from a dict of branch -> PRInfo."""
    provider = Mock(spec=ReviewProvider)
    provider.name = "mock"
    provider.is_available.return_value = True
    verdicts = {}
    provider.verdicts = verdicts
    provider.fetch.side_effect = lambda path, branch: verdicts.get(branch, PRInfo())
    return provider


@pytest.fixture
def mock_git_ops():
    """GitOperations mock with a clean, not-ahead working tree."""
    ops = Mock(spec=GitOperations)
    ops.detect_base_ref.return_value = "main"
    ops.verify_ref.return_value = True
    ops.has_working_changes.return_value = False
    ops.commits_ahead.return_value = 0
    return ops


@pytest.fixture
def merged_info():
    return PRInfo(BranchStatus.MERGED, ("alice",))
