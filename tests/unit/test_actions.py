"""Tests for action construction, configuration and resource references"""
import json

import pytest
from aws_cdk import aws_codebuild as codebuild

from pipeline_cdk.errors import InvalidActionProperty
from pipeline_cdk.model.actions import (
    ActionCategory,
    CodeBuildAction,
    CodeCommitSourceAction,
    CodeCommitTrigger,
    ManualApprovalAction,
    S3SourceAction,
    S3Trigger
)
from pipeline_cdk.model.artifacts import Artifact
from pipeline_cdk.model.environment import Environment
from pipeline_cdk.model.resources import (
    BucketReference,
    ProjectReference,
    RepositoryReference,
    TopicReference
)
from tests.test_constants import InfraConfig


def project():
    return ProjectReference.from_project_name("proj")


class TestActionConstruction:
    """Test properties rejected when an action is created"""

    @pytest.mark.parametrize("name", ["", "Build Step", "a" * 101, "Build/1"])
    def test_invalid_action_name(self, name):
        with pytest.raises(InvalidActionProperty, match="Action name"):
            ManualApprovalAction(name)

    @pytest.mark.parametrize("run_order", [0, 1000])
    def test_run_order_out_of_range(self, run_order):
        with pytest.raises(InvalidActionProperty, match="runOrder"):
            ManualApprovalAction("Approve", run_order=run_order)

    def test_default_run_order(self):
        assert ManualApprovalAction("Approve").run_order == 1

    def test_invalid_namespace(self):
        with pytest.raises(InvalidActionProperty, match="Namespace"):
            ManualApprovalAction("Approve", variables_namespace="bad.namespace")

    def test_invalid_property_is_a_value_error(self):
        with pytest.raises(ValueError):
            ManualApprovalAction("Approve", run_order=0)

    def test_build_requires_an_input(self):
        with pytest.raises(InvalidActionProperty, match="between 1 and 5 input"):
            CodeBuildAction("Build", project=project(), input=None)

    def test_build_output_limit(self):
        with pytest.raises(InvalidActionProperty, match="output artifacts"):
            CodeBuildAction(
                "Build",
                project=project(),
                input=Artifact("Source"),
                outputs=[Artifact() for _ in range(6)]
            )

    def test_build_requires_a_project(self):
        with pytest.raises(InvalidActionProperty, match="requires a project"):
            CodeBuildAction("Build", project=None, input=Artifact("Source"))

    def test_combine_artifacts_requires_batch_build(self):
        with pytest.raises(InvalidActionProperty, match="executeBatchBuild"):
            CodeBuildAction(
                "Build",
                project=project(),
                input=Artifact("Source"),
                combine_batch_build_artifacts=True
            )

    def test_approval_takes_no_artifacts(self):
        with pytest.raises(InvalidActionProperty, match="input artifacts"):
            ManualApprovalAction("Approve", inputs=[Artifact("Source")])

    def test_s3_source_requires_a_key(self):
        with pytest.raises(InvalidActionProperty, match="bucketKey"):
            S3SourceAction("S3_Source", BucketReference.from_bucket_name("b"), "", Artifact())

    def test_codecommit_requires_a_branch(self):
        with pytest.raises(InvalidActionProperty, match="branch"):
            CodeCommitSourceAction(
                "CodeCommit",
                repository=RepositoryReference.from_repository_name("repo"),
                output=Artifact(),
                branch=""
            )

    def test_invalid_artifact_name(self):
        with pytest.raises(InvalidActionProperty, match="Artifact name"):
            Artifact("source output")


class TestActionConfiguration:
    """Test the configuration each variant renders"""

    def test_codecommit_defaults(self):
        action = CodeCommitSourceAction(
            "CodeCommit",
            repository=RepositoryReference.from_repository_name("repo-name"),
            output=Artifact()
        )

        assert action.category == ActionCategory.SOURCE
        assert action.configuration() == {
            "RepositoryName": "repo-name",
            "BranchName": "master",
            "PollForSourceChanges": False
        }

    def test_codecommit_polling_and_clone_output(self):
        action = CodeCommitSourceAction(
            "CodeCommit",
            repository=RepositoryReference.from_repository_name("repo-name"),
            output=Artifact(),
            branch="main",
            trigger=CodeCommitTrigger.POLL,
            code_build_clone_output=True
        )

        assert action.configuration() == {
            "RepositoryName": "repo-name",
            "BranchName": "main",
            "PollForSourceChanges": True,
            "OutputArtifactFormat": "CODEBUILD_CLONE_REF"
        }

    @pytest.mark.parametrize("trigger, expected", [
        (S3Trigger.POLL, True),
        (S3Trigger.EVENTS, False),
        (S3Trigger.NONE, False),
    ])
    def test_s3_trigger(self, trigger, expected):
        action = S3SourceAction(
            "S3_Source",
            BucketReference.from_bucket_name("bucket"),
            "key",
            Artifact(),
            trigger=trigger
        )

        assert action.configuration()["PollForSourceChanges"] is expected

    def test_build_environment_variables(self):
        action = CodeBuildAction(
            "Build",
            project=project(),
            input=Artifact("Source"),
            environment_variables={
                "STAGE": "prod",
                "TOKEN": codebuild.BuildEnvironmentVariable(
                    value="github-token",
                    type=codebuild.BuildEnvironmentVariableType.SECRETS_MANAGER
                )
            }
        )

        rendered = action.configuration()["EnvironmentVariables"]

        assert rendered == (
            '[{"name":"STAGE","type":"PLAINTEXT","value":"prod"},'
            '{"name":"TOKEN","type":"SECRETS_MANAGER","value":"github-token"}]'
        )
        assert json.loads(rendered)[1]["type"] == "SECRETS_MANAGER"

    def test_build_with_extra_inputs_sets_primary_source(self):
        action = CodeBuildAction(
            "Build",
            project=project(),
            input=Artifact("Main"),
            extra_inputs=[Artifact("Extra")]
        )

        assert action.configuration()["PrimarySource"] == "Main"
        assert len(action.inputs) == 2

    def test_batch_build(self):
        action = CodeBuildAction(
            "Build",
            project=project(),
            input=Artifact("Source"),
            execute_batch_build=True,
            combine_batch_build_artifacts=True
        )

        assert action.configuration() == {
            "ProjectName": "proj",
            "BatchEnabled": "true",
            "CombineArtifacts": "true"
        }

    def test_approval_configuration(self):
        action = ManualApprovalAction(
            "Approve",
            notification_topic=TopicReference.from_topic_arn(InfraConfig.IMPORTED_TOPIC_ARN),
            additional_information="Check the staging site",
            external_entity_link="https://staging.example.com"
        )

        assert action.category == ActionCategory.APPROVAL
        assert action.provider == "Manual"
        assert action.configuration() == {
            "NotificationArn": InfraConfig.IMPORTED_TOPIC_ARN,
            "CustomData": "Check the staging site",
            "ExternalEntityLink": "https://staging.example.com"
        }

    def test_approval_without_settings_has_empty_configuration(self):
        assert ManualApprovalAction("Approve").configuration() == {}


class TestEnvironments:
    """Test account and region resolution"""

    def test_unknown_parts_never_mismatch(self):
        known = Environment(account=InfraConfig.PIPELINE_ACCOUNT, region=InfraConfig.PIPELINE_REGION)

        assert not Environment().is_cross_account(known)
        assert not known.is_cross_account(Environment())
        assert not Environment().is_cross_region(known)

    def test_inherit_fills_unknown_parts(self):
        parent = Environment(account=InfraConfig.PIPELINE_ACCOUNT, region=InfraConfig.PIPELINE_REGION)
        child = Environment(region=InfraConfig.SECONDARY_REGION)

        assert child.inherit(parent) == Environment(
            account=InfraConfig.PIPELINE_ACCOUNT,
            region=InfraConfig.SECONDARY_REGION
        )

    def test_action_overrides_resource_environment(self):
        action = CodeBuildAction(
            "Build",
            project=ProjectReference.from_project_name(
                "proj",
                account=InfraConfig.PROJECT_ACCOUNT,
                region=InfraConfig.PIPELINE_REGION
            ),
            input=Artifact("Source"),
            region=InfraConfig.SECONDARY_REGION
        )

        assert action.target_environment == Environment(
            account=InfraConfig.PROJECT_ACCOUNT,
            region=InfraConfig.SECONDARY_REGION
        )

    def test_topic_arn_environment(self):
        topic = TopicReference.from_topic_arn(InfraConfig.IMPORTED_TOPIC_ARN)

        assert topic.imported
        assert topic.environment == Environment(account="123456789012", region="us-east-1")

    def test_imported_references(self):
        assert ProjectReference.from_project_name("proj").imported
        assert RepositoryReference.from_repository_name("repo").imported
        assert BucketReference.from_bucket_name("bucket").imported
