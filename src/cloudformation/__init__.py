"""
CloudFormation stack management utilities.
"""

from .stack_manager import PollResult, ReconcileResult, StackManager, StackProbeError
from .stack_status import ABSENT, FAILURE_STATUSES, SUCCESS_STATUSES, TERMINAL_STATUSES, StackOutcome

__all__ = [
    "StackManager",
    "StackProbeError",
    "PollResult",
    "ReconcileResult",
    "StackOutcome",
    "ABSENT",
    "SUCCESS_STATUSES",
    "FAILURE_STATUSES",
    "TERMINAL_STATUSES",
]
