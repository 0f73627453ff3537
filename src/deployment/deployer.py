"""
Web application deployment: build, upload, reconcile the stack.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

from aws_session import AwsSession
from cloudformation import StackManager, StackOutcome
from config import DeployConfig

from .packager import ApplicationPackager, BuildError
from .uploader import ArtifactUploader
from .workspace import temporary_workspace

logger = logging.getLogger(__name__)


class DeploymentStatus(Enum):
    """Status of a deployment operation."""

    SUCCESS = "success"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


OUTCOME_STATUS = {
    StackOutcome.SUCCEEDED: DeploymentStatus.SUCCESS,
    StackOutcome.FAILED: DeploymentStatus.FAILED,
    StackOutcome.TIMED_OUT: DeploymentStatus.TIMED_OUT,
    StackOutcome.CANCELLED: DeploymentStatus.CANCELLED,
}


@dataclass
class DeploymentResult:
    """Result of a deployment operation."""

    status: DeploymentStatus
    message: str
    duration: float
    stack_status: Optional[str] = None
    artifact_url: Optional[str] = None
    outputs: Dict[str, str] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Check if deployment was successful."""
        return self.status == DeploymentStatus.SUCCESS

    def __bool__(self) -> bool:
        return self.success


def artifact_key(version: str) -> str:
    """Object key under which a version's archive is stored."""
    return f"{version}.zip"


class WebAppDeployer:
    """Package a web application and roll it out through a CloudFormation stack."""

    def __init__(
        self,
        session: AwsSession,
        config: Optional[DeployConfig] = None,
        packager: Optional[ApplicationPackager] = None,
        uploader: Optional[ArtifactUploader] = None,
        stack_manager: Optional[StackManager] = None,
    ):
        """
        Initialize deployer.

        Args:
            session: AWS session passed to every AWS-facing component
            config: Deployment settings
            packager: Build collaborator (built from config if not provided)
            uploader: S3 collaborator (built from session if not provided)
            stack_manager: CloudFormation collaborator (built from session if not provided)
        """
        self.session = session
        self.config = config or DeployConfig(region=session.region)
        self.packager = packager or ApplicationPackager(self.config.build_command)
        self.uploader = uploader or ArtifactUploader(session)
        self.stack_manager = stack_manager or StackManager(session, self.config)

    def _failed(self, message: str, start: float) -> DeploymentResult:
        logger.error(f"❌ {message}")
        return DeploymentResult(
            status=DeploymentStatus.FAILED,
            message=message,
            duration=time.time() - start,
            errors=[message],
        )

    def deploy(
        self,
        version: str,
        stack_name: str,
        parameters: Dict[str, str],
        template_path: Union[str, Path],
        project_path: Union[str, Path],
        bucket: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> DeploymentResult:
        """
        Build ``project_path``, store it as ``<version>.zip`` in ``bucket``
        and reconcile ``stack_name`` against the template.

        Build failures and failed stack operations come back as an
        unsuccessful result. Rejected stack submissions propagate.
        """
        start = time.time()
        template_path = Path(template_path)
        key = artifact_key(version)

        try:
            template_body = template_path.read_text()
        except OSError as e:
            return self._failed(f"Failed to load template {template_path}: {e}", start)

        with temporary_workspace(prefix=self.config.workspace_prefix) as workspace:
            try:
                archive = self.packager.package(Path(project_path), workspace / key)
            except BuildError as e:
                return self._failed(f"Build failed: {e}", start)

            artifact_url = self.uploader.upload(bucket, archive, key)

        stack_parameters = dict(parameters)
        stack_parameters.setdefault("ArtifactBucket", bucket)
        stack_parameters.setdefault("ArtifactKey", key)

        result = self.stack_manager.reconcile(
            stack_name, stack_parameters, template_body, cancel_event=cancel_event
        )

        status = OUTCOME_STATUS[result.outcome]
        outputs: Dict[str, str] = {}
        if result.success:
            outputs = self.stack_manager.get_stack_outputs(stack_name)
            verb = "is up to date" if result.no_op else f"{result.action}d"
            message = f"Stack {stack_name} {verb} with version {version}"
        else:
            message = f"Stack {stack_name} {result.action} {status.value} ({result.status})"

        return DeploymentResult(
            status=status,
            message=message,
            duration=time.time() - start,
            stack_status=result.status,
            artifact_url=artifact_url,
            outputs=outputs,
            errors=[] if result.success else [message],
        )
