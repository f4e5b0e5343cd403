"""Storage construct for pipeline artifact buckets"""
import logging
from typing import Dict, Sequence

from aws_cdk import (
    aws_s3 as s3,
    RemovalPolicy,
    Stack
)
from constructs import Construct

from pipeline_cdk.config import ArtifactStoreConfig

logger = logging.getLogger(__name__)


class ArtifactStorageConstruct(Construct):
    """
    Construct for creating the pipeline artifact store.

    Creates the S3 bucket holding artifacts in the pipeline's region and
    resolves the bucket names used in the other regions actions run in.
    Replication buckets themselves are provisioned outside this app.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: ArtifactStoreConfig
    ) -> None:
        """
        Initialize the artifact storage construct.

        Args:
            scope: Parent construct
            construct_id: Unique identifier for this construct
            config: Artifact store configuration settings
        """
        super().__init__(scope, construct_id)

        self._config = config

        self._artifact_bucket = s3.Bucket(
            self, "ArtifactBucket",
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
            encryption=s3.BucketEncryption.S3_MANAGED,
            enforce_ssl=True,
            removal_policy=(
                RemovalPolicy.DESTROY if config.auto_delete_objects else RemovalPolicy.RETAIN
            ),
            auto_delete_objects=config.auto_delete_objects
        )

    def replication_bucket_names(self, regions: Sequence[str]) -> Dict[str, str]:
        """Artifact bucket name for each region, configured or derived from the prefix"""
        names = {}
        for region in regions:
            name = self._config.replication_bucket_name(region)
            if name is None:
                name = f"{self._config.bucket_prefix}-{region}"
                logger.warning(
                    "No artifact bucket configured for region %s in %s, using %s",
                    region, Stack.of(self).stack_name, name
                )
            names[region] = name
        return names

    @property
    def artifact_bucket(self) -> s3.Bucket:
        """Get the S3 bucket for pipeline artifacts"""
        return self._artifact_bucket
