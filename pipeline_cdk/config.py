"""Configuration management for pipeline CDK infrastructure"""
import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional

LOG_LEVEL_ENV_VAR = "PIPELINE_CDK_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class ArtifactStoreConfig:
    """Artifact bucket configuration"""
    bucket_prefix: str = "pipeline-artifacts"
    auto_delete_objects: bool = True
    replication_bucket_names: Dict[str, str] = None

    def __post_init__(self):
        if self.replication_bucket_names is None:
            self.replication_bucket_names = {}

    def replication_bucket_name(self, region: str) -> Optional[str]:
        """Configured artifact bucket for a region other than the pipeline's"""
        return self.replication_bucket_names.get(region)


@dataclass
class PipelineConfig:
    """CodePipeline configuration"""
    pipeline_name: str
    restart_execution_on_update: bool = False
    role_name: Optional[str] = None
    artifact_store: ArtifactStoreConfig = None

    def __post_init__(self):
        if self.artifact_store is None:
            self.artifact_store = ArtifactStoreConfig()


@dataclass
class SourceConfig:
    """CodeCommit source repository configuration"""
    repository_name: str
    branch: str = "main"
    stage_name: str = "Source"
    action_name: str = "CodeCommit"


@dataclass
class BuildConfig:
    """CodeBuild project and action configuration"""
    project_name: str
    stage_name: str = "Build"
    action_name: str = "CodeBuild"
    build_image: str = "aws/codebuild/standard:7.0"
    timeout_minutes: int = 30
    exported_variables: List[str] = None
    cross_region: Optional[str] = None

    def __post_init__(self):
        if self.exported_variables is None:
            self.exported_variables = []


@dataclass
class ApprovalConfig:
    """Manual approval configuration"""
    topic_name: str
    action_name: str = "Approve"
    run_order: int = 2
    custom_data_variable: Optional[str] = None
    external_entity_link: Optional[str] = None


@dataclass
class PipelineCdkConfig:
    """Main configuration for the pipeline CDK stack"""
    pipeline: PipelineConfig
    source: SourceConfig
    build: BuildConfig
    approval: ApprovalConfig

    @classmethod
    def default(cls) -> "PipelineCdkConfig":
        """Create default configuration: source, build exporting a variable, approval showing it"""
        return cls(
            pipeline=PipelineConfig(
                pipeline_name="build-approval-pipeline",
                restart_execution_on_update=True
            ),
            source=SourceConfig(
                repository_name="application-repo"
            ),
            build=BuildConfig(
                project_name="application-build",
                exported_variables=["BUILD_VERSION"]
            ),
            approval=ApprovalConfig(
                topic_name="pipeline-approvals",
                custom_data_variable="BUILD_VERSION"
            )
        )


def configure_logging() -> None:
    """
    Configure the root logger from PIPELINE_CDK_LOG_LEVEL (default INFO).

    Raises:
        ValueError: the variable names an unknown level
    """
    level = os.environ.get(LOG_LEVEL_ENV_VAR, "INFO").upper()
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
