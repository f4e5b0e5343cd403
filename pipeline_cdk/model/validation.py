"""Rules checked when an action is added to a stage"""
from dataclasses import dataclass
from typing import Optional

from pipeline_cdk.errors import (
    ActionAlreadyAttached,
    ArtifactAlreadyProduced,
    ArtifactNotProduced,
    CrossAccountOutputsUnsupported,
    DuplicateActionName,
    PipelineValidationError
)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of checking one action against the stage it is added to"""
    error: Optional[PipelineValidationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls()

    @classmethod
    def failure(cls, error: PipelineValidationError) -> "ValidationResult":
        return cls(error=error)

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


def check_not_attached(stage, action) -> ValidationResult:
    if action.stage is not None:
        return ValidationResult.failure(
            ActionAlreadyAttached(action.action_name, action.stage.stage_name)
        )
    return ValidationResult.success()


def check_unique_action_name(stage, action) -> ValidationResult:
    if any(existing.action_name == action.action_name for existing in stage.actions):
        return ValidationResult.failure(
            DuplicateActionName(stage.stage_name, action.action_name)
        )
    return ValidationResult.success()


def check_inputs_produced(stage, action) -> ValidationResult:
    """Inputs must come from an earlier stage, or from this stage at a lower run order"""
    available = set()
    for earlier in stage.pipeline.stages_before(stage):
        for producer in earlier.actions:
            available.update(id(artifact) for artifact in producer.outputs)
    for producer in stage.actions:
        if producer.run_order < action.run_order:
            available.update(id(artifact) for artifact in producer.outputs)

    for artifact in action.inputs:
        if id(artifact) not in available:
            return ValidationResult.failure(
                ArtifactNotProduced(action.action_name, artifact.artifact_name)
            )
    return ValidationResult.success()


def _produced_names(pipeline) -> dict:
    """Output artifact names already in the pipeline, mapped to their producing action"""
    producers = {}
    for existing_stage in pipeline.stages:
        for producer in existing_stage.actions:
            for artifact in producer.outputs:
                producers[artifact.artifact_name] = producer.action_name
    return producers


def check_outputs_unclaimed(stage, action) -> ValidationResult:
    """Each output artifact name has a single producer, including names assigned by default"""
    producers = _produced_names(stage.pipeline)
    for index, artifact in enumerate(action.outputs):
        if artifact.producer is not None:
            return ValidationResult.failure(
                ArtifactAlreadyProduced(
                    action.action_name,
                    artifact.artifact_name,
                    artifact.producer.action_name
                )
            )
        name = artifact.name_for(stage.stage_name, action.action_name, index)
        if name in producers:
            return ValidationResult.failure(
                ArtifactAlreadyProduced(action.action_name, name, producers[name])
            )
        producers[name] = action.action_name
    return ValidationResult.success()


def check_cross_account_outputs(stage, action) -> ValidationResult:
    """
    Reject output artifacts on actions whose resource lives in another account.

    Only accounts are compared. An action in another region of the same
    account may declare outputs.
    """
    pipeline_environment = stage.pipeline.environment
    target = action.resolve_environment(pipeline_environment)
    if action.outputs and target.is_cross_account(pipeline_environment):
        return ValidationResult.failure(
            CrossAccountOutputsUnsupported(
                action.action_name,
                target.account,
                pipeline_environment.account
            )
        )
    return ValidationResult.success()


ATTACH_RULES = (
    check_not_attached,
    check_unique_action_name,
    check_inputs_produced,
    check_outputs_unclaimed,
    check_cross_account_outputs,
)


def validate_action(stage, action) -> ValidationResult:
    """Run every attach rule in order and return the first failure"""
    for rule in ATTACH_RULES:
        result = rule(stage, action)
        if not result.ok:
            return result
    return ValidationResult.success()
