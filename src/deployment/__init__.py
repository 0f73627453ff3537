"""
Deployment utilities for packaging and rolling out web applications.
"""

from .deployer import DeploymentResult, DeploymentStatus, WebAppDeployer, artifact_key
from .packager import ApplicationPackager, BuildError
from .uploader import ArtifactUploader
from .workspace import temporary_workspace

__all__ = [
    "WebAppDeployer",
    "DeploymentResult",
    "DeploymentStatus",
    "ApplicationPackager",
    "ArtifactUploader",
    "BuildError",
    "artifact_key",
    "temporary_workspace",
]
