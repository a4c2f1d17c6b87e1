"""Sizing of the background status loader."""

import os
import sys
from typing import Any, Dict, Optional


def gil_enabled() -> bool:
    """False only on a free-threaded (3.13+, GIL disabled) interpreter."""
    check = getattr(sys, "_is_gil_enabled", None)
    return True if check is None else bool(check())


def get_optimal_worker_count(user_specified: Optional[int] = None) -> int:
    """Number of status resolutions allowed to run at once.

    One slot per available processor, never fewer than one. Each slot spends
    most of its time waiting on git or the review provider, so the processor
    count is a ceiling on subprocess fan-out rather than on CPU use.

    Args:
        user_specified: Worker count from ``--workers``, if provided

    Returns:
        Worker count (>= 1)
    """
    if user_specified is not None and user_specified > 0:
        return user_specified
    return max(1, os.cpu_count() or 1)


def get_threading_info() -> Dict[str, Any]:
    """Interpreter and worker details printed by ``--debug``."""
    gil = gil_enabled()
    if not hasattr(sys, "_is_gil_enabled"):
        mode = "GIL-enabled (Python < 3.13)"
    else:
        mode = "GIL-enabled" if gil else "free-threading"
    return {
        "mode": mode,
        "free_threading": not gil,
        "cpu_count": os.cpu_count() or 1,
        "optimal_workers": get_optimal_worker_count(),
        "python_version": "{}.{}.{}".format(*sys.version_info[:3]),
    }
