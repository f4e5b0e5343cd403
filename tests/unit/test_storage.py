"""Tests for pipeline artifact storage"""
import pytest
import aws_cdk as core
from pipeline_cdk.config import ArtifactStoreConfig
from pipeline_cdk.constructs.storage import ArtifactStorageConstruct
from tests.test_constants import ResourceType, InfraConfig
from tests.test_helpers import assert_resource_count, assert_has_property


class TestArtifactBucket:
    """Test artifact bucket configuration"""

    def test_artifact_bucket_created(self, template):
        """Test that only the artifact bucket is created"""
        assert_resource_count(template, ResourceType.S3_BUCKET, InfraConfig.EXPECTED_S3_BUCKETS)

    def test_artifact_bucket_blocks_public_access(self, template):
        """Test that the artifact bucket blocks all public access"""
        assert_has_property(template, ResourceType.S3_BUCKET, {
            "PublicAccessBlockConfiguration": {
                "BlockPublicAcls": True,
                "BlockPublicPolicy": True,
                "IgnorePublicAcls": True,
                "RestrictPublicBuckets": True
            }
        })

    def test_artifact_bucket_is_encrypted(self, template):
        """Test that artifacts are encrypted at rest"""
        assert_has_property(template, ResourceType.S3_BUCKET, {
            "BucketEncryption": {
                "ServerSideEncryptionConfiguration": [
                    {"ServerSideEncryptionByDefault": {"SSEAlgorithm": "AES256"}}
                ]
            }
        })


class TestReplicationBucketNames:
    """Test bucket names resolved for other regions"""

    def _storage(self, config: ArtifactStoreConfig) -> ArtifactStorageConstruct:
        stack = core.Stack()
        return ArtifactStorageConstruct(stack, "ArtifactStorage", config)

    def test_configured_name_is_used(self):
        storage = self._storage(
            ArtifactStoreConfig(replication_bucket_names={"eu-west-1": "dublin-artifacts"})
        )

        assert storage.replication_bucket_names(["eu-west-1"]) == {
            "eu-west-1": "dublin-artifacts"
        }

    def test_missing_name_is_derived_from_prefix(self):
        storage = self._storage(ArtifactStoreConfig(bucket_prefix="team-artifacts"))

        assert storage.replication_bucket_names(["eu-west-1", InfraConfig.SECONDARY_REGION]) == {
            "eu-west-1": "team-artifacts-eu-west-1",
            InfraConfig.SECONDARY_REGION: f"team-artifacts-{InfraConfig.SECONDARY_REGION}"
        }
