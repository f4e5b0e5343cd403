from aws_cdk import (
    Stack,
    aws_codebuild as codebuild,
    aws_codecommit as codecommit,
    aws_sns as sns,
    CfnOutput,
    Duration
)
from constructs import Construct

from pipeline_cdk.config import BuildConfig, PipelineCdkConfig
from pipeline_cdk.constructs.cicd_pipeline import CodePipelineConstruct
from pipeline_cdk.model.actions import (
    CodeBuildAction,
    CodeCommitSourceAction,
    ManualApprovalAction
)
from pipeline_cdk.model.artifacts import Artifact


class PipelineCdkStack(Stack):

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: PipelineCdkConfig = None,
        **kwargs
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        config = config or PipelineCdkConfig.default()

        # Source repository is managed outside this stack
        repository = codecommit.Repository.from_repository_name(
            self, "SourceRepository",
            config.source.repository_name
        )

        build_project = codebuild.PipelineProject(
            self, "BuildProject",
            project_name=config.build.project_name,
            environment=codebuild.BuildEnvironment(
                build_image=codebuild.LinuxBuildImage.from_code_build_image_id(
                    config.build.build_image
                )
            ),
            build_spec=self._create_build_spec(config.build),
            timeout=Duration.minutes(config.build.timeout_minutes)
        )

        approval_topic = sns.Topic(
            self, "ApprovalTopic",
            topic_name=config.approval.topic_name
        )

        self._pipeline = CodePipelineConstruct(self, "Pipeline", config.pipeline)

        source_output = Artifact("SourceOutput")
        self._pipeline.add_stage(
            stage_name=config.source.stage_name,
            actions=[
                CodeCommitSourceAction(
                    action_name=config.source.action_name,
                    repository=repository,
                    branch=config.source.branch,
                    output=source_output
                )
            ]
        )

        build_action = CodeBuildAction(
            action_name=config.build.action_name,
            project=build_project,
            input=source_output,
            outputs=[Artifact("BuildOutput")]
        )
        build_actions = [build_action]

        # Same project, started in a second region
        if config.build.cross_region:
            build_actions.append(
                CodeBuildAction(
                    action_name=f"{config.build.action_name}CrossRegion",
                    project=build_project,
                    input=source_output,
                    region=config.build.cross_region
                )
            )

        build_stage = self._pipeline.add_stage(
            stage_name=config.build.stage_name,
            actions=build_actions
        )

        custom_data = None
        if config.approval.custom_data_variable:
            custom_data = build_action.variable(config.approval.custom_data_variable)

        build_stage.add_action(
            ManualApprovalAction(
                action_name=config.approval.action_name,
                notification_topic=approval_topic,
                additional_information=custom_data,
                external_entity_link=config.approval.external_entity_link,
                run_order=config.approval.run_order
            )
        )

        self._pipeline.roles.allow_source_pull(repository.repository_arn)
        self._pipeline.roles.allow_start_build(build_project.project_arn)
        self._pipeline.roles.allow_publish(approval_topic.topic_arn)

        CfnOutput(
            self, "PipelineName",
            value=self._pipeline.pipeline_name,
            description="Name of the CodePipeline"
        )

        CfnOutput(
            self, "ArtifactBucketName",
            value=self._pipeline.artifact_bucket.bucket_name,
            description="S3 bucket holding pipeline artifacts"
        )

        if build_action.exports_variables:
            CfnOutput(
                self, "BuildVariablesNamespace",
                value=build_action.variables_namespace,
                description="Namespace of the variables exported by the build action"
            )

    def _create_build_spec(self, config: BuildConfig) -> codebuild.BuildSpec:
        """Create BuildSpec exporting the configured variables"""
        spec = {
            "version": "0.2",
            "phases": {
                "build": {
                    "commands": [
                        "echo Build started on `date`",
                        "COMMIT_HASH=$(echo $CODEBUILD_RESOLVED_SOURCE_VERSION | cut -c 1-7)"
                    ] + [
                        f'export {variable}="${{COMMIT_HASH:=latest}}"'
                        for variable in config.exported_variables
                    ]
                }
            }
        }
        if config.exported_variables:
            spec["env"] = {"exported-variables": list(config.exported_variables)}
        return codebuild.BuildSpec.from_object(spec)

    @property
    def pipeline(self) -> CodePipelineConstruct:
        return self._pipeline
