"""Pipeline actions: the shared action contract and its source, build and approval variants"""
import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Sequence, Union

from aws_cdk import (
    aws_codebuild as codebuild,
    aws_codecommit as codecommit,
    aws_s3 as s3,
    aws_sns as sns
)

from pipeline_cdk.errors import (
    InvalidActionProperty,
    PipelineValidationError,
    UnboundVariableReference
)
from pipeline_cdk.model.artifacts import Artifact
from pipeline_cdk.model.environment import Environment
from pipeline_cdk.model.resources import (
    BucketReference,
    ProjectReference,
    RepositoryReference,
    TopicReference
)

ACTION_NAME_PATTERN = re.compile(r"^[A-Za-z0-9.@_-]{1,100}$")
NAMESPACE_PATTERN = re.compile(r"^[A-Za-z0-9@_-]{1,100}$")
_NAMESPACE_SANITIZE_PATTERN = re.compile(r"[^A-Za-z0-9@_-]")
NAMESPACE_SEPARATOR = "_"
NAMESPACE_SUFFIX = "NS"
MIN_RUN_ORDER = 1
MAX_RUN_ORDER = 999


class ActionCategory(str, Enum):
    SOURCE = "Source"
    BUILD = "Build"
    TEST = "Test"
    APPROVAL = "Approval"


@dataclass(frozen=True)
class ArtifactBounds:
    """Number of input and output artifacts an action type accepts"""
    min_inputs: int
    max_inputs: int
    min_outputs: int
    max_outputs: int


class VariableReference:
    """
    Placeholder for a variable exported by another action.

    Renders as ``#{<Namespace>.<Variable>}``; CodePipeline substitutes the
    value when the pipeline executes.
    """

    def __init__(self, action: "Action", variable_name: str) -> None:
        self.action = action
        self.variable_name = variable_name

    def render(self) -> str:
        namespace = self.action.variables_namespace
        if namespace is None:
            raise UnboundVariableReference(self.action.action_name, self.variable_name)
        return f"#{{{namespace}.{self.variable_name}}}"

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return f"VariableReference({self.action.action_name!r}, {self.variable_name!r})"


def render_value(value):
    if isinstance(value, VariableReference):
        return value.render()
    return value


def _compact(configuration: dict) -> dict:
    return {key: value for key, value in configuration.items() if value is not None}


class Action:
    """
    Base contract shared by every pipeline action.

    Subclasses set the action type (category, provider, owner, version), the
    artifact bounds of that type, the environment of the resource they act
    on and their rendered configuration.
    """

    category: ActionCategory = None
    provider: str = None
    owner: str = "AWS"
    version: str = "1"
    artifact_bounds = ArtifactBounds(0, 5, 0, 5)

    def __init__(
        self,
        action_name: str,
        *,
        inputs: Optional[Sequence[Artifact]] = None,
        outputs: Optional[Sequence[Artifact]] = None,
        run_order: Optional[int] = None,
        variables_namespace: Optional[str] = None,
        account: Optional[str] = None,
        region: Optional[str] = None
    ) -> None:
        if not action_name or not ACTION_NAME_PATTERN.match(action_name):
            raise InvalidActionProperty(
                f"Action name must match regular expression: "
                f"{ACTION_NAME_PATTERN.pattern}, got '{action_name}'"
            )
        if run_order is None:
            run_order = MIN_RUN_ORDER
        if not MIN_RUN_ORDER <= run_order <= MAX_RUN_ORDER:
            raise InvalidActionProperty(
                f"'runOrder' must be between {MIN_RUN_ORDER} and {MAX_RUN_ORDER}, "
                f"got {run_order} for action '{action_name}'"
            )
        if variables_namespace is not None and not NAMESPACE_PATTERN.match(variables_namespace):
            raise InvalidActionProperty(
                f"Namespace must match regular expression: "
                f"{NAMESPACE_PATTERN.pattern}, got '{variables_namespace}'"
            )

        self._action_name = action_name
        self._run_order = run_order
        self._inputs = tuple(artifact for artifact in (inputs or ()) if artifact is not None)
        self._outputs = tuple(artifact for artifact in (outputs or ()) if artifact is not None)
        self._account = account
        self._region = region
        self._variables_namespace = variables_namespace
        self._variables_referenced = False
        self._stage = None

        self._validate_artifact_bounds()

    def _validate_artifact_bounds(self) -> None:
        bounds = self.artifact_bounds
        for kind, count, low, high in (
            ("input", len(self._inputs), bounds.min_inputs, bounds.max_inputs),
            ("output", len(self._outputs), bounds.min_outputs, bounds.max_outputs),
        ):
            if not low <= count <= high:
                raise InvalidActionProperty(
                    f"{self.provider} action '{self._action_name}' must have between "
                    f"{low} and {high} {kind} artifacts, got {count}"
                )

    @property
    def action_name(self) -> str:
        return self._action_name

    @property
    def run_order(self) -> int:
        return self._run_order

    @property
    def inputs(self) -> tuple:
        return self._inputs

    @property
    def outputs(self) -> tuple:
        return self._outputs

    @property
    def stage(self):
        """Stage the action is attached to, or None"""
        return self._stage

    @property
    def resource_environment(self) -> Environment:
        """Environment of the resource this action acts on"""
        return Environment()

    def resolve_environment(self, pipeline_environment: Environment) -> Environment:
        """Target account and region, with anything not declared inherited from the pipeline"""
        declared = self.resource_environment.with_overrides(
            account=self._account,
            region=self._region
        )
        return declared.inherit(pipeline_environment)

    @property
    def target_environment(self) -> Environment:
        if self._stage is None:
            return self.resource_environment.with_overrides(
                account=self._account,
                region=self._region
            )
        return self.resolve_environment(self._stage.pipeline.environment)

    def variable(self, variable_name: str) -> VariableReference:
        """Reference a variable this action exports, for use in another action"""
        self._variables_referenced = True
        return VariableReference(self, variable_name)

    @property
    def exports_variables(self) -> bool:
        return self._variables_referenced or self._variables_namespace is not None

    @property
    def variables_namespace(self) -> Optional[str]:
        if self._variables_namespace is not None:
            return self._variables_namespace
        if self._stage is None:
            return None
        namespace = NAMESPACE_SEPARATOR.join(
            (self._stage.stage_name, self._action_name, NAMESPACE_SUFFIX)
        )
        # stage and action names may contain "." which ends a namespace in #{...}
        return _NAMESPACE_SANITIZE_PATTERN.sub(NAMESPACE_SEPARATOR, namespace)[:100]

    def configuration(self) -> dict:
        return {}

    def _bind(self, stage) -> None:
        self._stage = stage
        for index, artifact in enumerate(self._outputs):
            artifact._bind_producer(self, stage.stage_name, index)

    def _unbind(self) -> None:
        self._stage = None
        for artifact in self._outputs:
            artifact._unbind_producer()

    def render(self) -> dict:
        if self._stage is None:
            raise PipelineValidationError(
                f"Action '{self._action_name}' has not been added to a stage"
            )

        rendered = {
            "Name": self._action_name,
            "ActionTypeId": {
                "Category": self.category.value,
                "Owner": self.owner,
                "Provider": self.provider,
                "Version": self.version
            },
            "RunOrder": self._run_order
        }

        configuration = self.configuration()
        if configuration:
            rendered["Configuration"] = configuration
        if self._inputs:
            rendered["InputArtifacts"] = [artifact.render() for artifact in self._inputs]
        if self._outputs:
            rendered["OutputArtifacts"] = [artifact.render() for artifact in self._outputs]
        if self.exports_variables:
            rendered["Namespace"] = self.variables_namespace

        environment = self.target_environment
        if environment.is_cross_region(self._stage.pipeline.environment):
            rendered["Region"] = environment.region

        return rendered

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._action_name!r})"


class CodeCommitTrigger(Enum):
    NONE = "None"
    POLL = "Poll"
    EVENTS = "Events"


class CodeCommitSourceAction(Action):
    """Checks out a branch of a CodeCommit repository"""

    category = ActionCategory.SOURCE
    provider = "CodeCommit"
    artifact_bounds = ArtifactBounds(0, 0, 1, 1)

    def __init__(
        self,
        action_name: str,
        repository: Union[RepositoryReference, codecommit.IRepository],
        output: Artifact,
        *,
        branch: str = "master",
        trigger: CodeCommitTrigger = CodeCommitTrigger.EVENTS,
        code_build_clone_output: bool = False,
        **kwargs
    ) -> None:
        if repository is None:
            raise InvalidActionProperty(f"Action '{action_name}' requires a repository")
        if not branch:
            raise InvalidActionProperty(f"'branch' must not be empty for action '{action_name}'")
        super().__init__(action_name, outputs=[output], **kwargs)
        if not isinstance(repository, RepositoryReference):
            repository = RepositoryReference.from_repository(repository)
        self.repository = repository
        self.branch = branch
        self.trigger = trigger
        self.code_build_clone_output = code_build_clone_output

    @property
    def resource_environment(self) -> Environment:
        return self.repository.environment

    def configuration(self) -> dict:
        return _compact({
            "RepositoryName": self.repository.repository_name,
            "BranchName": self.branch,
            "PollForSourceChanges": self.trigger == CodeCommitTrigger.POLL,
            "OutputArtifactFormat": (
                "CODEBUILD_CLONE_REF" if self.code_build_clone_output else None
            )
        })


class S3Trigger(Enum):
    NONE = "None"
    POLL = "Poll"
    EVENTS = "Events"


class S3SourceAction(Action):
    """Uses an object in an S3 bucket as the pipeline source"""

    category = ActionCategory.SOURCE
    provider = "S3"
    artifact_bounds = ArtifactBounds(0, 0, 1, 1)

    def __init__(
        self,
        action_name: str,
        bucket: Union[BucketReference, s3.IBucket],
        bucket_key: str,
        output: Artifact,
        *,
        trigger: Optional[S3Trigger] = None,
        **kwargs
    ) -> None:
        if bucket is None:
            raise InvalidActionProperty(f"Action '{action_name}' requires a bucket")
        if not bucket_key:
            raise InvalidActionProperty(f"'bucketKey' must not be empty for action '{action_name}'")
        super().__init__(action_name, outputs=[output], **kwargs)
        if not isinstance(bucket, BucketReference):
            bucket = BucketReference.from_bucket(bucket)
        self.bucket = bucket
        self.bucket_key = bucket_key
        self.trigger = trigger

    @property
    def resource_environment(self) -> Environment:
        return self.bucket.environment

    def configuration(self) -> dict:
        poll = None if self.trigger is None else self.trigger == S3Trigger.POLL
        return _compact({
            "S3Bucket": self.bucket.bucket_name,
            "S3ObjectKey": self.bucket_key,
            "PollForSourceChanges": poll
        })


class CodeBuildActionType(Enum):
    BUILD = ActionCategory.BUILD
    TEST = ActionCategory.TEST


EnvironmentVariableValue = Union[str, VariableReference, codebuild.BuildEnvironmentVariable]


class CodeBuildAction(Action):
    """
    Runs a CodeBuild project on the action's input artifacts.

    The project may be managed in this app or imported by name from another
    account. A project in another account cannot return output artifacts to
    the pipeline; that combination is rejected when the action is added to a
    stage.
    """

    provider = "CodeBuild"
    artifact_bounds = ArtifactBounds(1, 5, 0, 5)

    def __init__(
        self,
        action_name: str,
        project: Union[ProjectReference, codebuild.IProject],
        input: Artifact,
        *,
        extra_inputs: Optional[Sequence[Artifact]] = None,
        outputs: Optional[Sequence[Artifact]] = None,
        type: CodeBuildActionType = CodeBuildActionType.BUILD,
        environment_variables: Optional[Mapping[str, EnvironmentVariableValue]] = None,
        execute_batch_build: bool = False,
        combine_batch_build_artifacts: bool = False,
        **kwargs
    ) -> None:
        if project is None:
            raise InvalidActionProperty(f"Action '{action_name}' requires a project")
        if combine_batch_build_artifacts and not execute_batch_build:
            raise InvalidActionProperty(
                f"'combineBatchBuildArtifacts' requires 'executeBatchBuild' "
                f"for action '{action_name}'"
            )
        self.category = type.value
        super().__init__(
            action_name,
            inputs=[input] + list(extra_inputs or []),
            outputs=outputs,
            **kwargs
        )
        if not isinstance(project, ProjectReference):
            project = ProjectReference.from_project(project)
        self.project = project
        self.environment_variables = dict(environment_variables or {})
        self.execute_batch_build = execute_batch_build
        self.combine_batch_build_artifacts = combine_batch_build_artifacts

    @property
    def resource_environment(self) -> Environment:
        return self.project.environment

    def _render_environment_variables(self) -> Optional[str]:
        if not self.environment_variables:
            return None
        rendered = []
        for name, variable in self.environment_variables.items():
            if isinstance(variable, codebuild.BuildEnvironmentVariable):
                value = variable.value
                variable_type = variable.type.value if variable.type else "PLAINTEXT"
            else:
                value = variable
                variable_type = "PLAINTEXT"
            rendered.append({
                "name": name,
                "type": variable_type,
                "value": render_value(value)
            })
        return json.dumps(rendered, separators=(",", ":"))

    def configuration(self) -> dict:
        primary_source = self.inputs[0].artifact_name if len(self.inputs) > 1 else None
        return _compact({
            "ProjectName": self.project.project_name,
            "PrimarySource": primary_source,
            "EnvironmentVariables": self._render_environment_variables(),
            "BatchEnabled": "true" if self.execute_batch_build else None,
            "CombineArtifacts": "true" if self.combine_batch_build_artifacts else None
        })


class ManualApprovalAction(Action):
    """Pauses the pipeline until someone approves or rejects it"""

    category = ActionCategory.APPROVAL
    provider = "Manual"
    artifact_bounds = ArtifactBounds(0, 0, 0, 0)

    def __init__(
        self,
        action_name: str,
        *,
        notification_topic: Optional[Union[TopicReference, sns.ITopic]] = None,
        additional_information: Optional[Union[str, VariableReference]] = None,
        external_entity_link: Optional[str] = None,
        **kwargs
    ) -> None:
        super().__init__(action_name, **kwargs)
        if notification_topic is not None and not isinstance(notification_topic, TopicReference):
            notification_topic = TopicReference.from_topic(notification_topic)
        self.notification_topic = notification_topic
        self.additional_information = additional_information
        self.external_entity_link = external_entity_link

    def configuration(self) -> dict:
        topic_arn = self.notification_topic.topic_arn if self.notification_topic else None
        return _compact({
            "NotificationArn": topic_arn,
            "CustomData": render_value(self.additional_information),
            "ExternalEntityLink": render_value(self.external_entity_link)
        })
