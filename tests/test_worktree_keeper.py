"""Integration tests for WorktreeKeeper"""

import os
import shutil
from pathlib import Path
from unittest.mock import patch

import pytest

from git_worktree_keeper.core import WorktreeKeeper
from git_worktree_keeper.exceptions import (
    ConfigError,
    GitWorktreeKeeperError,
    NotInRepositoryError,
    WorktreeNotFoundError,
)


@pytest.fixture
def keeper(git_repo, config, monkeypatch):
    """Keeper invoked from the primary worktree with review lookups disabled."""
    monkeypatch.setenv("GWK_CALLER_CWD", git_repo.working_dir)
    keeper = WorktreeKeeper(git_repo.working_dir, config)
    yield keeper
    keeper.close()


@pytest.fixture
def ignored_env(git_repo):
    """An ignored .env in the primary worktree."""
    root = Path(git_repo.working_dir)
    (root / ".gitignore").write_text(".env\n")
    git_repo.index.add([".gitignore"])
    git_repo.index.commit("Ignore env")
    (root / ".env").write_text("TOKEN=abc\n")
    return root / ".env"


class TestSetup:
    """Test construction."""

    def test_outside_repository(self, temp_dir, config):
        outside = temp_dir / "not-a-repo"
        outside.mkdir()

        with pytest.raises(NotInRepositoryError):
            WorktreeKeeper(str(outside), config)

    def test_dict_config(self, git_repo, mock_config):
        keeper = WorktreeKeeper(git_repo.working_dir, mock_config)

        assert keeper.config.review_provider == "none"
        assert keeper.coordinator.max_workers == 4


class TestNewWorktree:
    """Test WorktreeKeeper.new_worktree."""

    def test_creates_branch_and_worktree(self, keeper, git_ops):
        path = keeper.new_worktree("feature/new")

        assert path == keeper.path_planner.compute_path("feature/new")
        assert os.path.isdir(path)
        assert git_ops.branch_at(path) == "feature/new"
        assert keeper.worktree_service.find_by_branch("feature/new") == path

    def test_mirrors_ignored_files(self, keeper, ignored_env):
        path = keeper.new_worktree("feature/env")

        link = Path(path) / ".env"
        assert link.is_symlink()
        assert link.read_text() == "TOKEN=abc\n"

    def test_refuses_existing_branch(self, keeper, git_repo):
        git_repo.create_head("taken")

        with pytest.raises(GitWorktreeKeeperError, match="Branch already exists"):
            keeper.new_worktree("taken")

    def test_refuses_existing_worktree(self, keeper):
        keeper.new_worktree("feature/dup")

        with pytest.raises(GitWorktreeKeeperError, match="Worktree already exists"):
            keeper.new_worktree("feature/dup")

    def test_from_ref(self, keeper, git_ops, add_worktree):
        base = add_worktree("feature/base", commit=True)

        path = keeper.new_worktree("feature/child", from_ref="feature/base")

        assert git_ops.run("rev-parse", "HEAD", cwd=path) == git_ops.run("rev-parse", "HEAD", cwd=base)

    def test_from_current(self, keeper, git_ops, add_worktree, monkeypatch):
        base = add_worktree("feature/current", commit=True)
        monkeypatch.setenv("GWK_CALLER_CWD", base)
        keeper = WorktreeKeeper(base, keeper.config)

        path = keeper.new_worktree("feature/from-current", from_current=True)

        assert git_ops.run("rev-parse", "HEAD", cwd=path) == git_ops.run("rev-parse", "HEAD", cwd=base)

    def test_post_create_hook(self, keeper, git_repo):
        git_repo.git.config("--add", "gwk.hooks.post-create",
                            'echo "$GWK_HOOK_NAME $GWK_BRANCH" > hook.txt')

        path = keeper.new_worktree("feature/hooked")

        assert (Path(path) / "hook.txt").read_text() == "post-create feature/hooked\n"

    def test_failing_hook_does_not_fail_creation(self, keeper, git_repo):
        git_repo.git.config("--add", "gwk.hooks.post-create", "exit 1")

        path = keeper.new_worktree("feature/bad-hook")

        assert os.path.isdir(path)


class TestAddWorktree:
    """Test WorktreeKeeper.add_worktree."""

    def test_existing_local_branch(self, keeper, git_repo, git_ops, temp_dir):
        # Unreachable origin so the fetch fails fast
        git_repo.remotes.origin.set_url(str(temp_dir / "missing.git"))
        git_repo.create_head("existing")

        path = keeper.add_worktree("existing")

        assert git_ops.branch_at(path) == "existing"


class TestGo:
    """Test WorktreeKeeper.go."""

    def test_by_branch(self, keeper):
        path = keeper.new_worktree("feature/go")

        assert keeper.go("feature/go") == path

    def test_keeps_caller_subdirectory(self, keeper, git_repo, monkeypatch):
        root = Path(git_repo.working_dir)
        (root / "src").mkdir()
        (root / "src" / "app.py").write_text("print()\n")
        git_repo.index.add(["src/app.py"])
        git_repo.index.commit("Add src")
        path = keeper.new_worktree("feature/sub")
        monkeypatch.setenv("GWK_CALLER_CWD", str(root / "src"))

        assert keeper.go("feature/sub") == os.path.join(path, "src")

    def test_unknown_branch(self, keeper):
        with pytest.raises(WorktreeNotFoundError):
            keeper.go("missing")

    def test_post_checkout_hook(self, keeper, git_repo):
        path = keeper.new_worktree("feature/checkout")
        git_repo.git.config("--add", "gwk.hooks.postCheckout",
                            'echo "$GWK_PREV_BRANCH $GWK_NEW_BRANCH" > checkout.txt')

        keeper.go("feature/checkout")

        assert (Path(path) / "checkout.txt").read_text() == "main feature/checkout\n"

    def test_cancelled_picker(self, keeper):
        keeper.new_worktree("feature/one")

        with patch.object(WorktreeKeeper, "pick", return_value=None):
            assert keeper.go() is None

    def test_picker_choice(self, keeper):
        path = keeper.new_worktree("feature/one")

        def choose(collection, multi=False, prompt=""):
            # The current (primary) worktree is not offered
            assert [e.raw_branch for e in collection.base] == ["feature/one"]
            return [collection.base[0]]

        with patch.object(keeper, "pick", side_effect=choose):
            assert keeper.go() == path


class TestListWorktrees:
    """Test WorktreeKeeper.list_worktrees."""

    def test_statuses_resolved(self, keeper, add_worktree):
        add_worktree("feature/fresh")
        add_worktree("feature/busy", commit=True)

        entries = keeper.list_worktrees()

        statuses = {e.raw_branch: e.status for e in entries}
        assert statuses == {"main": "", "feature/fresh": "NOT STARTED", "feature/busy": "IN PROGRESS"}
        assert [e.is_current for e in entries] == [True, False, False]

    def test_display(self, keeper, add_worktree, capsys):
        add_worktree("feature/fresh")

        keeper.display_worktrees(keeper.list_worktrees())

        err = capsys.readouterr().err
        assert "feature/fresh" in err
        assert "NOT STARTED" in err


class TestRemove:
    """Test worktree removal."""

    def test_remove_branches(self, keeper, git_ops):
        path = keeper.new_worktree("feature/done")

        removed, failed = keeper.remove_branches(["feature/done"])

        assert (removed, failed) == (1, [])
        assert not os.path.exists(path)
        assert not git_ops.branch_exists("feature/done")

    def test_partial_failure(self, keeper):
        keeper.new_worktree("feature/done")

        removed, failed = keeper.remove_branches(["feature/done", "missing"])

        assert (removed, failed) == (1, ["missing"])

    def test_refuses_current_worktree(self, keeper, monkeypatch):
        path = keeper.new_worktree("feature/here")
        monkeypatch.setenv("GWK_CALLER_CWD", path)

        removed, failed = keeper.remove_branches(["feature/here"])

        assert (removed, failed) == (0, ["feature/here"])
        assert os.path.isdir(path)

    def test_dirty_worktree_needs_force(self, keeper):
        path = keeper.new_worktree("feature/dirty")
        Path(path, "wip.txt").write_text("wip\n")

        assert keeper.remove_branches(["feature/dirty"]) == (0, ["feature/dirty"])
        assert keeper.remove_branches(["feature/dirty"], force=True) == (1, [])

    def test_post_remove_hook_runs_in_primary(self, keeper, git_repo):
        git_repo.git.config("--add", "gwk.hooks.post-remove", 'echo "$GWK_BRANCH" > removed.txt')
        keeper.new_worktree("feature/gone")

        keeper.remove_branches(["feature/gone"])

        assert (Path(git_repo.working_dir) / "removed.txt").read_text() == "feature/gone\n"

    def test_interactive_cancel(self, keeper):
        keeper.new_worktree("feature/one")

        with patch.object(WorktreeKeeper, "pick", return_value=None):
            assert keeper.remove_interactive() is None

    def test_interactive_excludes_primary_and_current(self, keeper):
        keeper.new_worktree("feature/a")
        keeper.new_worktree("feature/b")

        def choose(collection, multi=False, prompt=""):
            assert multi is True
            assert sorted(e.raw_branch for e in collection.base) == ["feature/a", "feature/b"]
            return list(collection.base)

        with patch.object(keeper, "pick", side_effect=choose):
            assert keeper.remove_interactive() == (2, [])

    def test_clean(self, keeper):
        path = keeper.new_worktree("feature/vanished")
        shutil.rmtree(path)

        keeper.clean()

        keeper.worktree_service.clear_cache()
        assert [wt.branch for wt in keeper.worktree_service.list_worktrees()] == ["main"]


class TestMove:
    """Test WorktreeKeeper.move."""

    def test_move(self, keeper, git_ops):
        old = keeper.new_worktree("feature/old")

        landing = keeper.move("feature/old", "feature/renamed")

        assert landing == keeper.path_planner.compute_path("feature/renamed")
        assert not os.path.exists(old)
        assert git_ops.branch_at(landing) == "feature/renamed"


class TestSymlinkCommands:
    """Test sync, link and unlink."""

    def test_sync_from_worktree(self, keeper, ignored_env, monkeypatch):
        path = keeper.new_worktree("feature/s")
        os.remove(Path(path) / ".env")
        monkeypatch.setenv("GWK_CALLER_CWD", path)

        assert keeper.sync() == 1
        assert (Path(path) / ".env").is_symlink()

    def test_sync_refused_in_primary(self, keeper):
        with pytest.raises(GitWorktreeKeeperError, match="primary worktree"):
            keeper.sync()

    def test_link_and_unlink(self, git_repo, config, monkeypatch):
        monkeypatch.setenv("GWK_CALLER_CWD", git_repo.working_dir)
        path = WorktreeKeeper(git_repo.working_dir, config).new_worktree("feature/l")
        keeper = WorktreeKeeper(path, config)
        local = Path(path) / "local.ini"
        local.write_text("x=1\n")

        dst = keeper.link(str(local))

        assert dst == os.path.join(git_repo.working_dir, "local.ini")
        assert local.is_symlink()

        keeper.unlink(str(local))

        assert not local.is_symlink()
        assert local.read_text() == "x=1\n"


class TestConfigCommands:
    """Test config get/set/list."""

    def test_set_and_get(self, keeper):
        assert keeper.config_set("hooks.background", "true") == "gwk.hooks.background"
        assert keeper.config_get("hooks-background") == "true"

    def test_get_missing(self, keeper):
        with pytest.raises(ConfigError, match="Key not found"):
            keeper.config_get("worktree.base")

    def test_list(self, keeper):
        keeper.config_set("review.provider", "gh")
        keeper.config_set("new.open-editor", "false")

        assert sorted(keeper.config_list()) == [
            ("gwk.new.open-editor", "false"),
            ("gwk.review.provider", "gh"),
        ]
