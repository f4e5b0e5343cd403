"""IAM roles construct for CodePipeline"""
from typing import Optional

from aws_cdk import (
    aws_iam as iam,
    aws_s3 as s3
)
from constructs import Construct


class PipelineRolesConstruct(Construct):
    """
    Construct for creating the pipeline service role.

    The role is assumed by CodePipeline and can read and write the artifact
    bucket. Roles in other accounts are managed outside this app.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        artifact_bucket: s3.IBucket,
        role_name: Optional[str] = None
    ) -> None:
        """
        Initialize the pipeline roles construct.

        Args:
            scope: Parent construct
            construct_id: Unique identifier for this construct
            artifact_bucket: Bucket the pipeline stores artifacts in
            role_name: Optional physical name of the role
        """
        super().__init__(scope, construct_id)

        self._pipeline_role = iam.Role(
            self, "PipelineRole",
            role_name=role_name,
            assumed_by=iam.ServicePrincipal("codepipeline.amazonaws.com")
        )

        artifact_bucket.grant_read_write(self._pipeline_role)

    def allow_start_build(self, project_arn: str) -> None:
        """Allow the pipeline to start and poll builds of a CodeBuild project"""
        self._pipeline_role.add_to_policy(
            iam.PolicyStatement(
                actions=[
                    "codebuild:BatchGetBuilds",
                    "codebuild:StartBuild",
                    "codebuild:StopBuild"
                ],
                resources=[project_arn]
            )
        )

    def allow_source_pull(self, repository_arn: str) -> None:
        """Allow the pipeline to check out a CodeCommit repository"""
        self._pipeline_role.add_to_policy(
            iam.PolicyStatement(
                actions=[
                    "codecommit:GetBranch",
                    "codecommit:GetCommit",
                    "codecommit:UploadArchive",
                    "codecommit:GetUploadArchiveStatus",
                    "codecommit:CancelUploadArchive"
                ],
                resources=[repository_arn]
            )
        )

    def allow_publish(self, topic_arn: str) -> None:
        """Allow the pipeline to send approval notifications to a topic"""
        self._pipeline_role.add_to_policy(
            iam.PolicyStatement(
                actions=["sns:Publish"],
                resources=[topic_arn]
            )
        )

    @property
    def pipeline_role(self) -> iam.Role:
        """Get the pipeline service role"""
        return self._pipeline_role
