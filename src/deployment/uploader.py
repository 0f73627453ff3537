"""Upload deployment artifacts to S3."""

import logging
from pathlib import Path

from botocore.exceptions import ClientError

from aws_session import AwsSession

logger = logging.getLogger(__name__)


class ArtifactUploader:
    """Store build artifacts in an S3 bucket, creating the bucket if needed."""

    def __init__(self, session: AwsSession):
        self.session = session
        self.region = session.region
        self.s3 = session.s3

    def ensure_bucket(self, bucket_name: str) -> bool:
        """
        Create S3 bucket if it doesn't exist.

        Returns:
            True if the bucket was created, False if it already existed
        """
        try:
            self.s3.head_bucket(Bucket=bucket_name)
            logger.debug(f"Bucket {bucket_name} already exists")
            return False
        except ClientError as e:
            if e.response["Error"]["Code"] not in ("404", "NoSuchBucket"):
                raise

        if self.region == "us-east-1":
            self.s3.create_bucket(Bucket=bucket_name)
        else:
            self.s3.create_bucket(
                Bucket=bucket_name,
                CreateBucketConfiguration={"LocationConstraint": self.region},
            )
        logger.info(f"✅ Created S3 bucket {bucket_name}")
        return True

    def upload(self, bucket_name: str, local_path: Path, key: str) -> str:
        """
        Store ``local_path`` under ``key``, overwriting any previous object.

        Returns:
            The s3:// URL of the stored object
        """
        self.ensure_bucket(bucket_name)

        logger.info(f"⬆️  Uploading {Path(local_path).name} to s3://{bucket_name}/{key}")
        self.s3.upload_file(str(local_path), bucket_name, key)
        return f"s3://{bucket_name}/{key}"
