"""Tests for review-status providers"""

import json
import subprocess
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from unittest.mock import Mock, patch

import pytest

from git_worktree_keeper.config import Config
from git_worktree_keeper.models.branch import BranchStatus, PRInfo
from git_worktree_keeper.services.review_service import (
    GhCliReviewProvider,
    GitHubApiReviewProvider,
    ReviewProvider,
    create_review_provider,
    parse_gh_pr_view,
)

RUN = "git_worktree_keeper.services.review_service.subprocess.run"


def _completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestParseGhPrView:
    """Test parsing of gh pr view JSON."""

    @pytest.mark.parametrize("state,expected", [
        ("MERGED", BranchStatus.MERGED),
        ("CLOSED", BranchStatus.CLOSED),
        ("OPEN", BranchStatus.OPENED),
        ("DRAFT", BranchStatus.UNKNOWN),
    ])
    def test_states(self, state, expected):
        info = parse_gh_pr_view(json.dumps({"state": state, "assignees": []}))
        assert info.status == expected

    def test_assignees_in_order(self):
        output = json.dumps({
            "state": "OPEN",
            "assignees": [{"login": "alice"}, {"login": "bob"}, {"name": "no login"}],
        })

        assert parse_gh_pr_view(output).assignees == ("alice", "bob")

    @pytest.mark.parametrize("output", ["", "not json", "[]", "null"])
    def test_garbage_is_no_verdict(self, output):
        assert parse_gh_pr_view(output) == PRInfo()


class TestGhCliReviewProvider:
    """Test the gh CLI provider."""

    def test_unavailable_without_gh(self):
        with patch("git_worktree_keeper.services.review_service.shutil.which", return_value=None):
            provider = GhCliReviewProvider()

        assert not provider.is_available()
        assert provider.fetch("/wt", "b") == PRInfo()

    def test_fetch_runs_gh_in_worktree(self):
        provider = GhCliReviewProvider(gh_path="/usr/bin/gh")
        stdout = json.dumps({"state": "MERGED", "assignees": [{"login": "alice"}]})

        with patch(RUN, return_value=_completed(stdout=stdout)) as mock_run:
            info = provider.fetch("/wt", "feature/x")

        assert info == PRInfo(BranchStatus.MERGED, ("alice",))
        args, kwargs = mock_run.call_args
        assert args[0] == ["/usr/bin/gh", "pr", "view", "feature/x", "--json", "state,assignees"]
        assert kwargs["cwd"] == "/wt"

    def test_no_pr_is_no_verdict(self):
        provider = GhCliReviewProvider(gh_path="/usr/bin/gh")

        with patch(RUN, return_value=_completed(1, stderr="no pull requests found")):
            assert provider.fetch("/wt", "b") == PRInfo()

    def test_spawn_failure_is_no_verdict(self):
        provider = GhCliReviewProvider(gh_path="/usr/bin/gh")

        with patch(RUN, side_effect=FileNotFoundError("gh")):
            assert provider.fetch("/wt", "b") == PRInfo()


def _pull(number, created, merged=False, state="open", assignees=()):
    pr = Mock()
    pr.number = number
    pr.created_at = created
    pr.merged = merged
    pr.state = state
    pr.assignees = [Mock(login=name) for name in assignees]
    return pr


class TestGitHubApiReviewProvider:
    """Test the PyGithub provider."""

    @pytest.fixture
    def provider(self):
        provider = GitHubApiReviewProvider("git@github.com:test/test-repo.git", "token")
        provider.github_repo = "test/test-repo"
        provider.gh_repo = Mock()
        return provider

    def test_availability_needs_token_and_github(self):
        assert GitHubApiReviewProvider("git@github.com:o/r.git", "t").is_available()
        assert not GitHubApiReviewProvider("git@github.com:o/r.git", None).is_available()
        assert not GitHubApiReviewProvider("git@gitlab.com:o/r.git", "t").is_available()

    def test_newest_pull_request_wins(self, provider):
        provider.gh_repo.get_pulls.return_value = [
            _pull(1, datetime(2024, 1, 1), merged=True, state="closed"),
            _pull(2, datetime(2024, 3, 1), state="open", assignees=("carol",)),
        ]

        info = provider.fetch("/wt", "feature/x")

        assert info == PRInfo(BranchStatus.OPENED, ("carol",))
        provider.gh_repo.get_pulls.assert_called_once_with(state="all", head="test:feature/x")

    @pytest.mark.parametrize("merged,state,expected", [
        (True, "closed", BranchStatus.MERGED),
        (False, "closed", BranchStatus.CLOSED),
        (False, "open", BranchStatus.OPENED),
    ])
    def test_state_mapping(self, provider, merged, state, expected):
        provider.gh_repo.get_pulls.return_value = [_pull(7, datetime(2024, 1, 1), merged, state)]

        assert provider.fetch("/wt", "b").status == expected

    def test_no_pulls_is_no_verdict(self, provider):
        provider.gh_repo.get_pulls.return_value = []

        assert provider.fetch("/wt", "b") == PRInfo()

    def test_api_error_is_no_verdict(self, provider):
        provider.gh_repo.get_pulls.side_effect = RuntimeError("rate limited")

        assert provider.fetch("/wt", "b") == PRInfo()

    def test_lazy_setup(self):
        provider = GitHubApiReviewProvider("https://github.com/org/repo.git", "token")

        with patch("git_worktree_keeper.services.review_service.Github") as mock_github:
            mock_github.return_value.get_repo.return_value.get_pulls.return_value = []
            provider.fetch("/wt", "b")

        mock_github.return_value.get_repo.assert_called_once_with("org/repo")
        assert provider.github_repo == "org/repo"

    def test_failed_setup_not_retried_per_branch(self):
        provider = GitHubApiReviewProvider("https://github.com/org/repo.git", "bad-token")

        with patch("git_worktree_keeper.services.review_service.Github") as mock_github:
            mock_github.return_value.get_repo.side_effect = RuntimeError("401 Bad credentials")
            infos = [provider.fetch("/wt", b) for b in ("a", "b", "c", "d")]

        assert infos == [PRInfo()] * 4
        assert mock_github.call_count == 1
        assert mock_github.return_value.get_repo.call_count == 1

    def test_concurrent_fetches_share_one_client(self):
        provider = GitHubApiReviewProvider("https://github.com/org/repo.git", "token")

        with patch("git_worktree_keeper.services.review_service.Github") as mock_github:
            mock_github.return_value.get_repo.return_value.get_pulls.return_value = []
            with ThreadPoolExecutor(max_workers=8) as executor:
                list(executor.map(lambda b: provider.fetch("/wt", b), [f"b{i}" for i in range(16)]))

        assert mock_github.call_count == 1

    def test_close(self, provider):
        provider.github = Mock()
        provider.close()

        provider.github.close.assert_called_once()


class TestCreateReviewProvider:
    """Test provider selection."""

    @pytest.fixture
    def ops(self):
        ops = Mock()
        ops.remote_url.return_value = "git@github.com:test/test-repo.git"
        return ops

    def test_none(self, ops):
        provider = create_review_provider(Config(review_provider="none"), ops)

        assert type(provider) is ReviewProvider
        assert not provider.is_available()

    def test_auto_with_token_uses_api(self, ops):
        provider = create_review_provider(Config(github_token="t"), ops)

        assert isinstance(provider, GitHubApiReviewProvider)

    def test_auto_reads_token_from_environment(self, ops, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")

        provider = create_review_provider(Config(), ops)

        assert isinstance(provider, GitHubApiReviewProvider)
        assert provider.github_token == "env-token"

    def test_auto_without_token_uses_gh(self, ops, monkeypatch):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)

        assert isinstance(create_review_provider(Config(), ops), GhCliReviewProvider)

    def test_auto_with_non_github_origin_uses_gh(self, ops):
        ops.remote_url.return_value = "git@gitlab.com:o/r.git"

        assert isinstance(create_review_provider(Config(github_token="t"), ops), GhCliReviewProvider)

    def test_api_without_token_disables_reviews(self, ops, monkeypatch):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)

        provider = create_review_provider(Config(review_provider="api"), ops)

        assert type(provider) is ReviewProvider

    def test_gh(self, ops):
        assert isinstance(create_review_provider(Config(review_provider="gh", github_token="t"), ops),
                          GhCliReviewProvider)
