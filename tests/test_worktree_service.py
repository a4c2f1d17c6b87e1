"""Tests for worktree listing and removal"""

import os
import shutil

import pytest

from git_worktree_keeper.exceptions import GitOperationError, WorktreeNotFoundError
from git_worktree_keeper.services.git.worktrees import WorktreeService, parse_worktree_list

PORCELAIN = """worktree /home/u/repo
HEAD 1111111111111111111111111111111111111111
branch refs/heads/main

worktree /home/u/.worktrees/github.com/o/r/feature-x
HEAD 2222222222222222222222222222222222222222
branch refs/heads/feature/x

worktree /home/u/.worktrees/github.com/o/r/detached
HEAD 3333333333333333333333333333333333333333
detached
"""


class TestParseWorktreeList:
    """Test porcelain parsing."""

    def test_parses_branches_and_detached(self):
        worktrees = parse_worktree_list(PORCELAIN)

        assert [(wt.path, wt.branch) for wt in worktrees] == [
            ("/home/u/repo", "main"),
            ("/home/u/.worktrees/github.com/o/r/feature-x", "feature/x"),
            ("/home/u/.worktrees/github.com/o/r/detached", "HEAD"),
        ]
        assert worktrees[2].is_detached
        assert not worktrees[1].is_detached

    def test_without_trailing_blank_line(self):
        worktrees = parse_worktree_list(PORCELAIN.rstrip("\n"))

        assert len(worktrees) == 3

    def test_empty_output(self):
        assert parse_worktree_list("") == []


class TestWorktreeService:
    """Test WorktreeService against a real repository."""

    def test_primary_listed_first(self, git_ops, git_repo, add_worktree):
        path = add_worktree("feature/a")

        worktrees = WorktreeService(git_ops).list_worktrees()

        assert worktrees[0].path == git_repo.working_dir
        assert worktrees[0].branch == "main"
        assert (path, "feature/a") in [(wt.path, wt.branch) for wt in worktrees]

    def test_listing_is_cached_until_cleared(self, git_ops, add_worktree):
        service = WorktreeService(git_ops)
        assert len(service.list_worktrees()) == 1

        add_worktree("feature/a")

        assert len(service.list_worktrees()) == 1
        service.clear_cache()
        assert len(service.list_worktrees()) == 2

    def test_find_by_branch(self, git_ops, add_worktree):
        path = add_worktree("feature/a")

        assert WorktreeService(git_ops).find_by_branch("feature/a") == path

    def test_find_missing_branch(self, git_ops):
        with pytest.raises(WorktreeNotFoundError):
            WorktreeService(git_ops).find_by_branch("nope")

    def test_current_worktree_path_longest_prefix(self, git_ops, git_repo, add_worktree):
        path = add_worktree("feature/a")
        sub = os.path.join(path, "deep", "dir")
        os.makedirs(sub)
        service = WorktreeService(git_ops)

        assert service.current_worktree_path(sub) == path
        assert service.current_worktree_path(git_repo.working_dir) == git_repo.working_dir

    def test_current_worktree_path_outside(self, git_ops):
        with pytest.raises(GitOperationError):
            WorktreeService(git_ops).current_worktree_path("/")

    def test_remove_worktree(self, git_ops, add_worktree):
        path = add_worktree("feature/a")
        service = WorktreeService(git_ops)
        service.list_worktrees()

        assert service.remove_worktree(path) == (True, None)
        assert not os.path.exists(path)
        assert len(service.list_worktrees()) == 1

    def test_remove_dirty_worktree_needs_force(self, git_ops, add_worktree):
        path = add_worktree("feature/a")
        with open(os.path.join(path, "wip.txt"), "w") as f:
            f.write("wip\n")
        service = WorktreeService(git_ops)

        success, error = service.remove_worktree(path)
        assert success is False
        assert error

        assert service.remove_worktree(path, force=True) == (True, None)

    def test_prune_forgets_deleted_directories(self, git_ops, add_worktree):
        path = add_worktree("feature/a")
        shutil.rmtree(path)
        service = WorktreeService(git_ops)

        assert service.prune_worktrees() == (True, None)
        assert [wt.branch for wt in service.list_worktrees()] == ["main"]
