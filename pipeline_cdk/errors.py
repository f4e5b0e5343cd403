"""Errors raised while composing pipeline stages and actions"""
from typing import Optional

CROSS_ACCOUNT_OUTPUTS_ISSUE_URL = "https://github.com/aws/aws-cdk/issues/4169"


class PipelineValidationError(Exception):
    """Base class for every invalid pipeline composition"""


class CrossAccountOutputsUnsupported(PipelineValidationError):
    """
    An action acting on a resource in another account declared output artifacts.

    CodeBuild cannot write output artifacts back to a pipeline that lives in
    a different account, so such actions are rejected when they are attached.
    """

    reference = CROSS_ACCOUNT_OUTPUTS_ISSUE_URL

    def __init__(
        self,
        action_name: str,
        action_account: str,
        pipeline_account: str
    ) -> None:
        self.action_name = action_name
        self.action_account = action_account
        self.pipeline_account = pipeline_account
        super().__init__(
            f"Action '{action_name}' targets account {action_account} but the "
            f"pipeline is in account {pipeline_account}. A cross-account action "
            f"cannot have outputs. This is a known CodeBuild limitation. "
            f"See {self.reference} for details"
        )


class DuplicateStageName(PipelineValidationError):
    def __init__(self, stage_name: str) -> None:
        self.stage_name = stage_name
        super().__init__(f"Stage with duplicate name '{stage_name}' added to the Pipeline")


class DuplicateActionName(PipelineValidationError):
    def __init__(self, stage_name: str, action_name: str) -> None:
        self.stage_name = stage_name
        self.action_name = action_name
        super().__init__(
            f"Stage '{stage_name}' already contains an action with name '{action_name}'"
        )


class ArtifactNotProduced(PipelineValidationError):
    """An input artifact is not the output of any earlier action"""

    def __init__(self, action_name: str, artifact_name: Optional[str]) -> None:
        self.action_name = action_name
        self.artifact_name = artifact_name
        label = f"'{artifact_name}'" if artifact_name else "(unnamed)"
        super().__init__(
            f"Action '{action_name}' is using input Artifact {label}, "
            f"which is not being produced in this pipeline before it"
        )


class ArtifactAlreadyProduced(PipelineValidationError):
    def __init__(self, action_name: str, artifact_name: str, producer_name: str) -> None:
        self.action_name = action_name
        self.artifact_name = artifact_name
        self.producer_name = producer_name
        super().__init__(
            f"Action '{action_name}' declares output Artifact '{artifact_name}', "
            f"which is already produced by action '{producer_name}'"
        )


class ActionAlreadyAttached(PipelineValidationError):
    def __init__(self, action_name: str, stage_name: str) -> None:
        self.action_name = action_name
        self.stage_name = stage_name
        super().__init__(
            f"Action '{action_name}' is already attached to stage '{stage_name}'"
        )


class InvalidActionProperty(PipelineValidationError, ValueError):
    """An action was constructed with an illegal property value"""


class UnboundVariableReference(PipelineValidationError):
    def __init__(self, action_name: str, variable_name: str) -> None:
        self.action_name = action_name
        self.variable_name = variable_name
        super().__init__(
            f"Variable '{variable_name}' of action '{action_name}' was referenced, "
            f"but the action was never added to a stage and has no explicit namespace"
        )


class UnknownStage(PipelineValidationError, KeyError):
    def __init__(self, stage_name: str) -> None:
        self.stage_name = stage_name
        super().__init__(f"Stage '{stage_name}' is not part of this pipeline")

    def __str__(self) -> str:
        return self.args[0]


class InvalidPipelineStructure(PipelineValidationError):
    """The pipeline as a whole breaks a structural rule"""

    def __init__(self, errors) -> None:
        self.errors = list(errors)
        super().__init__("Pipeline is invalid:\n  " + "\n  ".join(self.errors))
