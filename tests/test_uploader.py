"""
Tests for deployment.uploader module.
"""

from pathlib import Path
from unittest.mock import Mock

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from aws_session import AwsSession
from deployment.uploader import ArtifactUploader


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mocked AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.delenv("AWS_PROFILE", raising=False)


@pytest.fixture
def artifact(tmp_path: Path) -> Path:
    path = tmp_path / "1.0.0.zip"
    path.write_bytes(b"PK\x05\x06" + b"\x00" * 18)
    return path


class TestArtifactUploader:
    """Test ArtifactUploader against a mocked S3."""

    @mock_aws
    def test_upload_creates_bucket(self, aws_credentials, artifact) -> None:
        """Test uploading into a bucket that does not exist yet."""
        uploader = ArtifactUploader(AwsSession(region="us-east-1"))

        url = uploader.upload("deploy-artifacts", artifact, "1.0.0.zip")

        assert url == "s3://deploy-artifacts/1.0.0.zip"
        s3 = boto3.client("s3", region_name="us-east-1")
        body = s3.get_object(Bucket="deploy-artifacts", Key="1.0.0.zip")["Body"].read()
        assert body == artifact.read_bytes()

    @mock_aws
    def test_upload_outside_us_east_1(self, aws_credentials, artifact) -> None:
        """Test that buckets outside us-east-1 get a location constraint."""
        uploader = ArtifactUploader(AwsSession(region="eu-west-1"))

        uploader.upload("deploy-artifacts-eu", artifact, "1.0.0.zip")

        s3 = boto3.client("s3", region_name="eu-west-1")
        location = s3.get_bucket_location(Bucket="deploy-artifacts-eu")
        assert location["LocationConstraint"] == "eu-west-1"

    @mock_aws
    def test_upload_is_idempotent(self, aws_credentials, artifact) -> None:
        """Test that repeated uploads reuse the bucket and overwrite the key."""
        uploader = ArtifactUploader(AwsSession(region="us-east-1"))

        assert uploader.ensure_bucket("deploy-artifacts") is True
        uploader.upload("deploy-artifacts", artifact, "1.0.0.zip")
        uploader.upload("deploy-artifacts", artifact, "1.0.0.zip")
        assert uploader.ensure_bucket("deploy-artifacts") is False

        s3 = boto3.client("s3", region_name="us-east-1")
        keys = [obj["Key"] for obj in s3.list_objects_v2(Bucket="deploy-artifacts")["Contents"]]
        assert keys == ["1.0.0.zip"]

    def test_head_bucket_errors_propagate(self, artifact) -> None:
        """Test that errors other than a missing bucket are raised."""
        session = Mock(spec=AwsSession)
        session.region = "us-east-1"
        session.s3 = Mock()
        session.s3.head_bucket.side_effect = ClientError(
            {"Error": {"Code": "403", "Message": "Forbidden"}}, "HeadBucket"
        )
        uploader = ArtifactUploader(session)

        with pytest.raises(ClientError):
            uploader.upload("someone-elses-bucket", artifact, "1.0.0.zip")

        session.s3.create_bucket.assert_not_called()
        session.s3.upload_file.assert_not_called()
