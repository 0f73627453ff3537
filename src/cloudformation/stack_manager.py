"""
CloudFormation stack reconciliation.

Decides between create and update for a named stack, submits the change
and polls until the stack settles in a terminal status.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Collection, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from aws_session import AwsSession
from config import DeployConfig

from .stack_status import (
    ABSENT,
    TERMINAL_STATUSES,
    Absent,
    Found,
    ProbeError,
    ProbeResult,
    StackOutcome,
    is_success,
    is_terminal,
)

logger = logging.getLogger(__name__)

NO_UPDATES_MESSAGE = "No updates are to be performed"

# Default for per-call settings that fall back to DeployConfig
_FROM_CONFIG: Any = object()


class StackProbeError(Exception):
    """Raised when a stack status lookup keeps failing."""

    def __init__(self, stack_name: str, cause: Exception):
        super().__init__(f"Could not determine status of stack {stack_name}: {cause}")
        self.stack_name = stack_name
        self.cause = cause


@dataclass
class PollResult:
    """Result of waiting for a stack to settle."""

    outcome: StackOutcome
    status: Optional[str]
    probes: int
    elapsed: float


@dataclass
class ReconcileResult:
    """Result of a create or update of a stack."""

    stack_name: str
    action: str
    status: Optional[str]
    outcome: StackOutcome
    no_op: bool = False

    @property
    def success(self) -> bool:
        """Check if the stack reached a successful terminal status."""
        return self.outcome is StackOutcome.SUCCEEDED


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def _error_message(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Message", error))


def is_missing_stack_error(error: ClientError) -> bool:
    """Check if a describe call failed because the stack does not exist."""
    return _error_code(error) == "ValidationError" and "does not exist" in _error_message(
        error
    )


def is_no_op_update_error(error: ClientError) -> bool:
    """Check if an update was rejected because the stack already matches."""
    return _error_code(error) == "ValidationError" and NO_UPDATES_MESSAGE in _error_message(
        error
    )


class StackManager:
    """Manage CloudFormation stack operations."""

    def __init__(
        self,
        session: AwsSession,
        config: Optional[DeployConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize stack manager.

        Args:
            session: AWS session the calls are made through
            config: Polling and submission settings
            sleep: Sleep function used between probes when no cancel event is given
            clock: Monotonic clock used for the wait limit
        """
        self.session = session
        self.config = config or DeployConfig(region=session.region)
        self.cloudformation = session.cloudformation
        self._sleep = sleep
        self._clock = clock

    def probe(self, stack_name: str) -> ProbeResult:
        """Look up a stack once, distinguishing absence from lookup errors."""
        if not stack_name:
            raise ValueError("Stack name must not be empty")

        try:
            response = self.cloudformation.describe_stacks(StackName=stack_name)
        except ClientError as e:
            if is_missing_stack_error(e):
                return Absent()
            return ProbeError(e)
        except BotoCoreError as e:
            return ProbeError(e)

        stacks = response.get("Stacks", [])
        if not stacks:
            return Absent()
        return Found(str(stacks[0]["StackStatus"]))

    def get_stack_status(self, stack_name: str) -> str:
        """
        Get current stack status, retrying failed lookups.

        Returns:
            The stack status, or ABSENT if the stack does not exist

        Raises:
            StackProbeError: if every attempt failed
        """
        delay = self.config.probe_backoff
        attempts = self.config.probe_retries + 1

        attempt = 1

        while True:
            result = self.probe(stack_name)
            if not isinstance(result, ProbeError):
                return result.status

            if attempt >= attempts:
                raise StackProbeError(stack_name, result.cause)

            logger.warning(
                f"⚠️  Status lookup for {stack_name} failed "
                f"(attempt {attempt}/{attempts}): {result.cause}"
            )
            self._sleep(delay)
            delay *= 2
            attempt += 1

    def await_terminal(
        self,
        stack_name: str,
        terminal_statuses: Collection[str] = TERMINAL_STATUSES,
        poll_interval: Optional[float] = None,
        max_wait: Optional[float] = _FROM_CONFIG,
        cancel_event: Optional[threading.Event] = None,
    ) -> PollResult:
        """
        Poll a stack until its status is one of ``terminal_statuses``.

        Args:
            stack_name: Name of the CloudFormation stack
            terminal_statuses: Statuses that end the wait
            poll_interval: Seconds between probes (config default)
            max_wait: Seconds before giving up (config default); None waits without limit
            cancel_event: Set to stop waiting, also interrupts the pause between probes

        Returns:
            PollResult with the first terminal status observed
        """
        interval = poll_interval if poll_interval is not None else self.config.poll_interval
        limit = self.config.max_wait if max_wait is _FROM_CONFIG else max_wait

        def reached(status: str) -> bool:
            if terminal_statuses is TERMINAL_STATUSES:
                return is_terminal(status)
            return status in terminal_statuses

        start = self._clock()
        probes = 0
        status: Optional[str] = None

        while True:
            if cancel_event is not None and cancel_event.is_set():
                return self._cancelled(stack_name, status, probes, start)

            status = self.get_stack_status(stack_name)
            probes += 1
            elapsed = self._clock() - start

            if reached(status):
                outcome = StackOutcome.SUCCEEDED if is_success(status) else StackOutcome.FAILED
                return PollResult(outcome, status, probes, elapsed)

            if status == ABSENT:
                logger.error(f"❌ Stack {stack_name} no longer exists")
                return PollResult(StackOutcome.FAILED, status, probes, elapsed)

            if limit is not None and elapsed >= limit:
                logger.error(
                    f"❌ Timed out after {elapsed:.0f}s waiting for stack "
                    f"{stack_name} (last status {status})"
                )
                return PollResult(StackOutcome.TIMED_OUT, status, probes, elapsed)

            pause = interval if limit is None else min(interval, limit - elapsed)
            logger.debug(f"Stack {stack_name} is {status}, checking again in {pause}s")
            if cancel_event is not None:
                if cancel_event.wait(pause):
                    return self._cancelled(stack_name, status, probes, start)
            else:
                self._sleep(pause)

    def _cancelled(
        self, stack_name: str, status: Optional[str], probes: int, start: float
    ) -> PollResult:
        logger.warning(f"Stopped waiting for stack {stack_name}")
        return PollResult(StackOutcome.CANCELLED, status, probes, self._clock() - start)

    @staticmethod
    def format_parameters(parameters: Dict[str, str]) -> List[Dict[str, str]]:
        """Convert a parameter mapping to CloudFormation parameters."""
        return [
            {"ParameterKey": key, "ParameterValue": str(value)}
            for key, value in parameters.items()
        ]

    def format_tags(self) -> List[Dict[str, str]]:
        """Convert configured tags to CloudFormation tags."""
        return [{"Key": key, "Value": str(value)} for key, value in self.config.tags.items()]

    def reconcile(
        self,
        stack_name: str,
        parameters: Dict[str, str],
        template_body: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReconcileResult:
        """
        Create the stack if it is absent, otherwise update it, then wait.

        Submission errors from CloudFormation propagate unchanged, apart from
        the update rejection that signals the stack already matches. That
        no-op keeps the outcome of the status the stack is already in.

        Args:
            stack_name: Name of the CloudFormation stack
            parameters: Template parameters in submission order
            template_body: Template content as string
            cancel_event: Set to stop waiting for the stack

        Returns:
            ReconcileResult whose ``success`` is the deployment outcome
        """
        current = self.get_stack_status(stack_name)
        action = "create" if current == ABSENT else "update"

        request: Dict[str, Any] = {
            "StackName": stack_name,
            "TemplateBody": template_body,
            "Parameters": self.format_parameters(parameters),
            "Capabilities": list(self.config.capabilities),
        }
        tags = self.format_tags()
        if tags:
            request["Tags"] = tags

        if action == "create":
            logger.info(f"🚀 Creating stack {stack_name}...")
            self.cloudformation.create_stack(**request)
        else:
            logger.info(f"🔄 Updating stack {stack_name} (currently {current})...")
            try:
                self.cloudformation.update_stack(**request)
            except ClientError as e:
                if not is_no_op_update_error(e):
                    raise
                if not is_success(current):
                    logger.error(
                        f"❌ No updates to apply, but stack {stack_name} is still {current}"
                    )
                    return ReconcileResult(
                        stack_name, action, current, StackOutcome.FAILED, no_op=True
                    )
                logger.info(f"ℹ️  No updates needed for stack {stack_name}")
                return ReconcileResult(
                    stack_name, action, current, StackOutcome.SUCCEEDED, no_op=True
                )

        poll = self.await_terminal(stack_name, TERMINAL_STATUSES, cancel_event=cancel_event)

        if poll.outcome is StackOutcome.SUCCEEDED:
            logger.info(f"✅ Stack {stack_name} reached {poll.status}")
        elif poll.outcome is StackOutcome.FAILED:
            logger.error(f"❌ Stack {stack_name} {action} ended in {poll.status}")
            for event in self.describe_failure_events(stack_name):
                logger.error(
                    f"  - {event['logical_id']} ({event['resource_type']}): {event['reason']}"
                )

        return ReconcileResult(stack_name, action, poll.status, poll.outcome)

    def describe_failure_events(self, stack_name: str, limit: int = 10) -> List[Dict[str, str]]:
        """Get the most recent failed resource events of a stack."""
        failures: List[Dict[str, str]] = []

        try:
            response = self.cloudformation.describe_stack_events(StackName=stack_name)
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Could not retrieve stack events: {e}")
            return failures

        for event in response.get("StackEvents", []):
            if not event.get("ResourceStatus", "").endswith("FAILED"):
                continue
            failures.append(
                {
                    "logical_id": event["LogicalResourceId"],
                    "resource_type": event["ResourceType"],
                    "status": event["ResourceStatus"],
                    "reason": event.get("ResourceStatusReason", "No reason provided"),
                    "timestamp": str(event["Timestamp"]),
                }
            )
            if len(failures) >= limit:
                break

        return failures

    def get_stack_outputs(self, stack_name: str) -> Dict[str, str]:
        """Get outputs from a CloudFormation stack."""
        try:
            response = self.cloudformation.describe_stacks(StackName=stack_name)
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Failed to get stack outputs: {e}")
            return {}

        outputs = {}
        if response.get("Stacks"):
            for output in response["Stacks"][0].get("Outputs", []):
                outputs[output["OutputKey"]] = output["OutputValue"]
        return outputs
