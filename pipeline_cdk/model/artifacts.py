"""Artifacts passed between pipeline actions"""
import re
from typing import Optional

from pipeline_cdk.errors import InvalidActionProperty

_ARTIFACT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,100}$")
_SANITIZE_PATTERN = re.compile(r"[^A-Za-z0-9_-]")


class Artifact:
    """
    Named handle to the data produced by one action and consumed by others.

    An artifact created without a name is named after its producing action
    (``Artifact_<Stage>_<Action>``) when that action is added to a stage.
    """

    def __init__(self, artifact_name: Optional[str] = None) -> None:
        if artifact_name is not None and not _ARTIFACT_NAME_PATTERN.match(artifact_name):
            raise InvalidActionProperty(
                f"Artifact name must match regular expression: "
                f"{_ARTIFACT_NAME_PATTERN.pattern}, got '{artifact_name}'"
            )
        self._artifact_name = artifact_name
        self._named_by_producer = False
        self._producer = None

    @property
    def artifact_name(self) -> Optional[str]:
        return self._artifact_name

    @property
    def producer(self):
        """The action that outputs this artifact, once it is attached"""
        return self._producer

    def name_for(self, stage_name: str, action_name: str, index: int) -> str:
        """Name the artifact has once output number ``index`` of the given action"""
        if self._artifact_name is not None:
            return self._artifact_name
        name = f"Artifact_{stage_name}_{action_name}"
        if index > 0:
            name = f"{name}_{index + 1}"
        return _SANITIZE_PATTERN.sub("_", name)[:100]

    def _bind_producer(self, action, stage_name: str, index: int) -> None:
        self._producer = action
        if self._artifact_name is None:
            self._artifact_name = self.name_for(stage_name, action.action_name, index)
            self._named_by_producer = True

    def _unbind_producer(self) -> None:
        self._producer = None
        if self._named_by_producer:
            self._artifact_name = None
            self._named_by_producer = False

    def render(self) -> dict:
        return {"Name": self._artifact_name}

    def __repr__(self) -> str:
        return f"Artifact({self._artifact_name!r})"
