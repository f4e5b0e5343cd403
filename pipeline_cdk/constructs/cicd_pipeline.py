"""CI/CD pipeline construct rendering a validated pipeline definition to CodePipeline"""
from typing import Callable, Optional, Sequence

import jsii
from aws_cdk import (
    aws_codepipeline as codepipeline,
    aws_iam as iam,
    aws_s3 as s3,
    IStableAnyProducer,
    Lazy,
    Stack
)
from constructs import Construct

from pipeline_cdk.config import PipelineConfig
from pipeline_cdk.constructs.iam_roles import PipelineRolesConstruct
from pipeline_cdk.constructs.storage import ArtifactStorageConstruct
from pipeline_cdk.model.actions import Action
from pipeline_cdk.model.environment import Environment
from pipeline_cdk.model.pipeline import Pipeline, Stage

ARTIFACT_STORE_TYPE = "S3"


@jsii.implements(IStableAnyProducer)
class _RenderedProperty:
    """Produces a pipeline property from the definition when the template is synthesized"""

    def __init__(self, render: Callable[[], object]) -> None:
        self._render = render

    def produce(self):
        return self._render()


class CodePipelineConstruct(Construct):
    """
    Construct for creating a CodePipeline from a pipeline definition.

    Stages and actions are validated as they are added, through this
    construct or through the stages it returns. The CloudFormation
    properties are rendered when the template is synthesized, so stages and
    actions added after construction are included.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: PipelineConfig,
        stages: Optional[Sequence[dict]] = None
    ) -> None:
        """
        Initialize the CI/CD pipeline construct.

        Args:
            scope: Parent construct
            construct_id: Unique identifier for this construct
            config: Pipeline configuration settings
            stages: Initial stages, each a dict of ``add_stage`` arguments
        """
        super().__init__(scope, construct_id)

        self._definition = Pipeline(
            Environment.of(self),
            pipeline_name=config.pipeline_name,
            restart_execution_on_update=config.restart_execution_on_update
        )

        self._storage = ArtifactStorageConstruct(
            self, "ArtifactStorage",
            config.artifact_store
        )

        self._roles = PipelineRolesConstruct(
            self, "Roles",
            self._storage.artifact_bucket,
            role_name=config.role_name
        )

        self._cfn_pipeline = codepipeline.CfnPipeline(
            self, "Resource",
            name=config.pipeline_name,
            role_arn=self._roles.pipeline_role.role_arn,
            restart_execution_on_update=config.restart_execution_on_update,
            stages=Lazy.any(
                _RenderedProperty(lambda: self._definition.render()["Stages"])
            ),
            artifact_store=Lazy.any(
                _RenderedProperty(self._render_artifact_store)
            ),
            artifact_stores=Lazy.any(
                _RenderedProperty(self._render_artifact_stores),
                omit_empty_array=True
            ),
            disable_inbound_stage_transitions=Lazy.any(
                _RenderedProperty(self._render_disabled_transitions),
                omit_empty_array=True
            )
        )

        self._cfn_pipeline.node.add_dependency(self._roles.pipeline_role)

        for stage_props in stages or []:
            self.add_stage(**stage_props)

    def add_stage(
        self,
        stage_name: str,
        actions: Optional[Sequence[Action]] = None,
        **kwargs
    ) -> Stage:
        """Add a stage to the pipeline definition"""
        return self._definition.add_stage(stage_name, actions, **kwargs)

    def stage(self, stage_name: str) -> Stage:
        return self._definition.stage(stage_name)

    def _render_artifact_store(self):
        if self._definition.cross_region_targets:
            return None
        return {
            "Type": ARTIFACT_STORE_TYPE,
            "Location": self._storage.artifact_bucket.bucket_name
        }

    def _render_artifact_stores(self):
        regions = self._definition.cross_region_targets
        if not regions:
            return []

        primary_region = self._definition.environment.region or Stack.of(self).region
        stores = [{
            "Region": primary_region,
            "ArtifactStore": {
                "Type": ARTIFACT_STORE_TYPE,
                "Location": self._storage.artifact_bucket.bucket_name
            }
        }]
        for region, bucket_name in self._storage.replication_bucket_names(regions).items():
            stores.append({
                "Region": region,
                "ArtifactStore": {
                    "Type": ARTIFACT_STORE_TYPE,
                    "Location": bucket_name
                }
            })
        return stores

    def _render_disabled_transitions(self):
        return self._definition.render().get("DisableInboundStageTransitions", [])

    @property
    def definition(self) -> Pipeline:
        """Get the validated pipeline definition"""
        return self._definition

    @property
    def cfn_pipeline(self) -> codepipeline.CfnPipeline:
        """Get the CodePipeline resource"""
        return self._cfn_pipeline

    @property
    def pipeline_name(self) -> str:
        """Get the pipeline name"""
        return self._cfn_pipeline.ref

    @property
    def pipeline_arn(self) -> str:
        """Get the pipeline ARN"""
        return Stack.of(self).format_arn(
            service="codepipeline",
            resource=self._cfn_pipeline.ref
        )

    @property
    def artifact_bucket(self) -> s3.Bucket:
        """Get the S3 bucket for pipeline artifacts"""
        return self._storage.artifact_bucket

    @property
    def roles(self) -> PipelineRolesConstruct:
        """Get the pipeline roles construct"""
        return self._roles

    @property
    def pipeline_role(self) -> iam.Role:
        """Get the pipeline service role"""
        return self._roles.pipeline_role
