"""
git-worktree-keeper - one worktree per branch, with live review status
"""

from .__version__ import __version__
from .core import WorktreeKeeper
from .cli.main import main

__all__ = ["WorktreeKeeper", "main", "__version__"]
