"""References to the resources pipeline actions act on"""
from dataclasses import dataclass, field

from aws_cdk import (
    aws_codebuild as codebuild,
    aws_codecommit as codecommit,
    aws_s3 as s3,
    aws_sns as sns,
    Token
)

from pipeline_cdk.model.environment import Environment


def _environment_from_arn(arn: str) -> Environment:
    """Region and account fields of an ARN, if it is a literal"""
    if Token.is_unresolved(arn):
        return Environment()
    parts = arn.split(":")
    if len(parts) < 6:
        return Environment()
    return Environment(account=parts[4] or None, region=parts[3] or None)


@dataclass(frozen=True)
class ProjectReference:
    """CodeBuild project an action starts builds in"""
    project_name: str
    environment: Environment = field(default_factory=Environment)
    imported: bool = False

    @classmethod
    def from_project(cls, project: codebuild.IProject) -> "ProjectReference":
        return cls(
            project_name=project.project_name,
            environment=Environment.of_resource(project),
            imported=not isinstance(project, codebuild.Project)
        )

    @classmethod
    def from_project_name(
        cls,
        project_name: str,
        account: str = None,
        region: str = None
    ) -> "ProjectReference":
        """Reference a project that is not managed here, by name only"""
        return cls(
            project_name=project_name,
            environment=Environment(account=account, region=region),
            imported=True
        )


@dataclass(frozen=True)
class RepositoryReference:
    """CodeCommit repository a source action checks out"""
    repository_name: str
    environment: Environment = field(default_factory=Environment)
    imported: bool = False

    @classmethod
    def from_repository(cls, repository: codecommit.IRepository) -> "RepositoryReference":
        return cls(
            repository_name=repository.repository_name,
            environment=Environment.of_resource(repository),
            imported=not isinstance(repository, codecommit.Repository)
        )

    @classmethod
    def from_repository_name(
        cls,
        repository_name: str,
        account: str = None,
        region: str = None
    ) -> "RepositoryReference":
        return cls(
            repository_name=repository_name,
            environment=Environment(account=account, region=region),
            imported=True
        )


@dataclass(frozen=True)
class BucketReference:
    """S3 bucket a source action polls"""
    bucket_name: str
    environment: Environment = field(default_factory=Environment)
    imported: bool = False

    @classmethod
    def from_bucket(cls, bucket: s3.IBucket) -> "BucketReference":
        return cls(
            bucket_name=bucket.bucket_name,
            environment=Environment.of_resource(bucket),
            imported=not isinstance(bucket, s3.Bucket)
        )

    @classmethod
    def from_bucket_name(
        cls,
        bucket_name: str,
        account: str = None,
        region: str = None
    ) -> "BucketReference":
        return cls(
            bucket_name=bucket_name,
            environment=Environment(account=account, region=region),
            imported=True
        )


@dataclass(frozen=True)
class TopicReference:
    """SNS topic notified when an approval is pending"""
    topic_arn: str
    environment: Environment = field(default_factory=Environment)
    imported: bool = False

    @classmethod
    def from_topic(cls, topic: sns.ITopic) -> "TopicReference":
        return cls(
            topic_arn=topic.topic_arn,
            environment=Environment.of_resource(topic),
            imported=not isinstance(topic, sns.Topic)
        )

    @classmethod
    def from_topic_arn(cls, topic_arn: str) -> "TopicReference":
        return cls(
            topic_arn=topic_arn,
            environment=_environment_from_arn(topic_arn),
            imported=True
        )
