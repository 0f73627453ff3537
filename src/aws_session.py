"""
Explicit AWS session shared by all deployment components.
"""

from typing import Any, Dict, Optional

import boto3

DEFAULT_REGION = "us-east-1"


class AwsSession:
    """Hold the account/region context and cache boto3 clients per service."""

    def __init__(self, region: Optional[str] = None, profile: Optional[str] = None):
        """
        Initialize AWS session.

        Args:
            region: AWS region
            profile: AWS profile to use
        """
        self.region = region or DEFAULT_REGION
        self.profile = profile

        session_args = {"region_name": self.region}
        if profile:
            session_args["profile_name"] = profile

        self._session = boto3.Session(**session_args)
        self._clients: Dict[str, Any] = {}

    def client(self, service: str) -> Any:
        """Get or create AWS client for a service."""
        if service not in self._clients:
            self._clients[service] = self._session.client(service)
        return self._clients[service]

    @property
    def cloudformation(self) -> Any:
        """Get CloudFormation client."""
        return self.client("cloudformation")

    @property
    def s3(self) -> Any:
        """Get S3 client."""
        return self.client("s3")

    def __repr__(self) -> str:
        return f"AwsSession(region={self.region!r}, profile={self.profile!r})"
