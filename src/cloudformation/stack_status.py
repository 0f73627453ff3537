"""
CloudFormation stack status vocabulary and probe results.
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Union

# Synthetic status for a stack the service does not know about
ABSENT = "ABSENT"

SUCCESS_STATUSES: FrozenSet[str] = frozenset(
    [
        "CREATE_COMPLETE",
        "UPDATE_COMPLETE",
        "IMPORT_COMPLETE",
    ]
)

FAILURE_STATUSES: FrozenSet[str] = frozenset(
    [
        "CREATE_FAILED",
        "ROLLBACK_COMPLETE",
        "ROLLBACK_FAILED",
        "DELETE_COMPLETE",
        "DELETE_FAILED",
        "UPDATE_FAILED",
        "UPDATE_ROLLBACK_COMPLETE",
        "UPDATE_ROLLBACK_FAILED",
        "IMPORT_ROLLBACK_COMPLETE",
        "IMPORT_ROLLBACK_FAILED",
    ]
)

TERMINAL_STATUSES: FrozenSet[str] = SUCCESS_STATUSES | FAILURE_STATUSES

IN_PROGRESS_STATUSES: FrozenSet[str] = frozenset(
    [
        "CREATE_IN_PROGRESS",
        "ROLLBACK_IN_PROGRESS",
        "DELETE_IN_PROGRESS",
        "UPDATE_IN_PROGRESS",
        "UPDATE_COMPLETE_CLEANUP_IN_PROGRESS",
        "UPDATE_ROLLBACK_IN_PROGRESS",
        "UPDATE_ROLLBACK_COMPLETE_CLEANUP_IN_PROGRESS",
        "REVIEW_IN_PROGRESS",
        "IMPORT_IN_PROGRESS",
        "IMPORT_ROLLBACK_IN_PROGRESS",
    ]
)


def is_terminal(status: str) -> bool:
    """Check whether no further automatic transition follows ``status``."""
    return status in TERMINAL_STATUSES


def is_success(status: str) -> bool:
    """Check whether ``status`` is a successful terminal status."""
    return status in SUCCESS_STATUSES


class StackOutcome(Enum):
    """Outcome of waiting on a stack operation."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Found:
    """The stack exists and reports ``status``."""

    status: str


@dataclass(frozen=True)
class Absent:
    """The stack does not exist."""

    status: str = ABSENT


@dataclass(frozen=True)
class ProbeError:
    """The lookup failed for a reason other than absence."""

    cause: Exception


ProbeResult = Union[Found, Absent, ProbeError]
