"""Pipeline and stage definitions and their rendering to CodePipeline properties"""
import logging
import re
from typing import List, Optional, Sequence

from pipeline_cdk.errors import (
    DuplicateStageName,
    InvalidPipelineStructure,
    PipelineValidationError,
    UnknownStage
)
from pipeline_cdk.model.actions import Action, ActionCategory
from pipeline_cdk.model.environment import Environment
from pipeline_cdk.model.validation import validate_action

logger = logging.getLogger(__name__)

STAGE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9.@_-]{1,100}$")
DEFAULT_TRANSITION_DISABLED_REASON = "Transition disabled"


class Stage:
    """Named, ordered group of actions"""

    def __init__(
        self,
        pipeline: "Pipeline",
        stage_name: str,
        transition_to_enabled: bool = True,
        transition_disabled_reason: Optional[str] = None
    ) -> None:
        self._pipeline = pipeline
        self._stage_name = stage_name
        self._actions: List[Action] = []
        self.transition_to_enabled = transition_to_enabled
        self.transition_disabled_reason = transition_disabled_reason

    @property
    def stage_name(self) -> str:
        return self._stage_name

    @property
    def pipeline(self) -> "Pipeline":
        return self._pipeline

    @property
    def actions(self) -> tuple:
        return tuple(self._actions)

    def add_action(self, action: Action) -> Action:
        """
        Validate the action against this stage and attach it.

        Raises:
            PipelineValidationError: the action breaks an attach rule; it is
                left unattached
        """
        result = validate_action(self, action)
        if not result.ok:
            logger.debug(
                "Rejected action %s in stage %s: %s",
                action.action_name, self._stage_name, result.error
            )
            result.raise_for_error()

        action._bind(self)
        self._actions.append(action)

        pipeline_environment = self._pipeline.environment
        target = action.target_environment
        if target.is_cross_account(pipeline_environment):
            logger.info(
                "Action %s in stage %s targets account %s",
                action.action_name, self._stage_name, target.account
            )
        if target.is_cross_region(pipeline_environment):
            logger.info(
                "Action %s in stage %s runs in region %s",
                action.action_name, self._stage_name, target.region
            )
        logger.debug("Added action %s to stage %s", action.action_name, self._stage_name)
        return action

    def _detach_actions(self) -> None:
        for action in self._actions:
            action._unbind()
        self._actions = []

    def render(self) -> dict:
        return {
            "Name": self._stage_name,
            "Actions": [action.render() for action in self._actions]
        }

    def __repr__(self) -> str:
        return f"Stage({self._stage_name!r})"


class Pipeline:
    """
    Ordered stages of a pipeline in a known environment.

    Actions are validated as they are added; the structure of the pipeline
    as a whole is validated when it is rendered.
    """

    def __init__(
        self,
        environment: Optional[Environment] = None,
        pipeline_name: Optional[str] = None,
        restart_execution_on_update: bool = False,
        stages: Optional[Sequence[dict]] = None
    ) -> None:
        self._environment = environment or Environment()
        self.pipeline_name = pipeline_name
        self.restart_execution_on_update = restart_execution_on_update
        self._stages: List[Stage] = []

        for stage_props in stages or []:
            self.add_stage(**stage_props)

    @property
    def environment(self) -> Environment:
        return self._environment

    @property
    def stages(self) -> tuple:
        return tuple(self._stages)

    @property
    def stage_count(self) -> int:
        return len(self._stages)

    def stage(self, stage_name: str) -> Stage:
        for stage in self._stages:
            if stage.stage_name == stage_name:
                return stage
        raise UnknownStage(stage_name)

    def _index_of(self, stage: Stage) -> int:
        for index, existing in enumerate(self._stages):
            if existing is stage:
                return index
        raise UnknownStage(stage.stage_name)

    def stages_before(self, stage: Stage) -> tuple:
        return tuple(self._stages[:self._index_of(stage)])

    def add_stage(
        self,
        stage_name: str,
        actions: Optional[Sequence[Action]] = None,
        transition_to_enabled: bool = True,
        transition_disabled_reason: Optional[str] = None,
        right_before: Optional[Stage] = None,
        just_after: Optional[Stage] = None
    ) -> Stage:
        """
        Add a stage, appended or placed relative to an existing stage.

        Any initial actions are attached in order. If one of them is rejected
        the stage is removed again and the error propagates.
        """
        if not stage_name or not STAGE_NAME_PATTERN.match(stage_name):
            raise PipelineValidationError(
                f"Stage name must match regular expression: "
                f"{STAGE_NAME_PATTERN.pattern}, got '{stage_name}'"
            )
        if any(existing.stage_name == stage_name for existing in self._stages):
            raise DuplicateStageName(stage_name)
        if right_before is not None and just_after is not None:
            raise PipelineValidationError(
                "Both 'right_before' and 'just_after' were specified for stage "
                f"'{stage_name}'; only one may be used"
            )

        if right_before is not None:
            index = self._index_of(right_before)
        elif just_after is not None:
            index = self._index_of(just_after) + 1
        else:
            index = len(self._stages)

        stage = Stage(
            self,
            stage_name,
            transition_to_enabled=transition_to_enabled,
            transition_disabled_reason=transition_disabled_reason
        )
        self._stages.insert(index, stage)
        logger.debug("Added stage %s at position %d", stage_name, index)

        try:
            for action in actions or []:
                stage.add_action(action)
        except Exception:
            stage._detach_actions()
            self._stages.remove(stage)
            raise

        return stage

    @property
    def cross_region_targets(self) -> List[str]:
        """Regions, other than the pipeline's own, that actions run in"""
        regions = set()
        for stage in self._stages:
            for action in stage.actions:
                target = action.target_environment
                if target.is_cross_region(self._environment):
                    regions.add(target.region)
        return sorted(regions)

    def validate(self) -> List[str]:
        """Structural problems of the pipeline as a whole"""
        errors = []
        if len(self._stages) < 2:
            errors.append("Pipeline must have at least two stages")

        for index, stage in enumerate(self._stages):
            if not stage.actions:
                errors.append(f"Stage '{stage.stage_name}' must have at least one action")
            for action in stage.actions:
                is_source = action.category == ActionCategory.SOURCE
                if index == 0 and not is_source:
                    errors.append(
                        f"Action '{action.action_name}' in the first stage "
                        f"'{stage.stage_name}' is not a Source action"
                    )
                elif index > 0 and is_source:
                    errors.append(
                        f"Source action '{action.action_name}' may only occur "
                        f"in the first stage"
                    )

        namespaces = {}
        for stage in self._stages:
            for action in stage.actions:
                if not action.exports_variables:
                    continue
                namespace = action.variables_namespace
                if namespace in namespaces:
                    errors.append(
                        f"Namespace '{namespace}' is used by both action "
                        f"'{namespaces[namespace]}' and action '{action.action_name}'"
                    )
                else:
                    namespaces[namespace] = action.action_name
        return errors

    def render(self) -> dict:
        """
        Render the CodePipeline properties owned by the definition.

        Returns:
            Dictionary with the pipeline name, the stages with their actions
            in declaration order, the disabled inbound transitions and the
            restart flag. Optional keys are omitted when unset.

        Raises:
            InvalidPipelineStructure: validate() reported errors
        """
        errors = self.validate()
        if errors:
            raise InvalidPipelineStructure(errors)

        rendered = {}
        if self.pipeline_name:
            rendered["Name"] = self.pipeline_name
        rendered["Stages"] = [stage.render() for stage in self._stages]

        disabled = [
            {
                "StageName": stage.stage_name,
                "Reason": stage.transition_disabled_reason or DEFAULT_TRANSITION_DISABLED_REASON
            }
            for stage in self._stages
            if not stage.transition_to_enabled
        ]
        if disabled:
            rendered["DisableInboundStageTransitions"] = disabled
        if self.restart_execution_on_update:
            rendered["RestartExecutionOnUpdate"] = True
        return rendered
