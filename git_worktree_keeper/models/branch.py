"""Branch status model"""
from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class BranchStatus(Enum):
    """Lifecycle state of a branch.

    UNKNOWN means "not resolved yet" or "not applicable" (detached HEAD).
    """
    MERGED = "merged"
    CLOSED = "closed"
    OPENED = "opened"
    IN_PROGRESS = "in progress"
    NOT_STARTED = "not started"
    UNKNOWN = ""

    @property
    def is_review_verdict(self) -> bool:
        """True for states that come from the review provider."""
        return self in (BranchStatus.MERGED, BranchStatus.CLOSED, BranchStatus.OPENED)

    def display(self) -> str:
        """Upper-cased label used by the picker and list table."""
        return self.value.upper()

    @classmethod
    def from_review_state(cls, state: str) -> "BranchStatus":
        """Map a review provider's PR state to a status (UNKNOWN = no verdict)."""
        return {
            "MERGED": cls.MERGED,
            "CLOSED": cls.CLOSED,
            "OPEN": cls.OPENED,
        }.get((state or "").strip().upper(), cls.UNKNOWN)


@dataclass(frozen=True)
class PRInfo:
    """One resolution result: status plus the review's assignees."""
    status: BranchStatus = BranchStatus.UNKNOWN
    assignees: Tuple[str, ...] = ()

    @property
    def has_verdict(self) -> bool:
        return self.status.is_review_verdict
