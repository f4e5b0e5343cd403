"""Pytest configuration and shared fixtures for CDK tests"""
import pytest
import aws_cdk as core
import aws_cdk.assertions as assertions
from pipeline_cdk.pipeline_cdk_stack import PipelineCdkStack
from pipeline_cdk.model.artifacts import Artifact
from pipeline_cdk.model.actions import S3SourceAction
from pipeline_cdk.model.environment import Environment
from pipeline_cdk.model.pipeline import Pipeline
from pipeline_cdk.model.resources import BucketReference
from tests.test_constants import InfraConfig


@pytest.fixture(scope="module")
def cdk_app():
    """Create a CDK app for testing (module-scoped for performance)"""
    return core.App()


@pytest.fixture(scope="module")
def cdk_stack(cdk_app):
    """Create the PipelineCdkStack for testing (module-scoped for performance)"""
    return PipelineCdkStack(cdk_app, "test-pipeline-cdk")


@pytest.fixture(scope="module")
def template(cdk_stack):
    """Generate CloudFormation template from the stack (module-scoped for performance)"""
    return assertions.Template.from_stack(cdk_stack)


@pytest.fixture
def pipeline_environment():
    """Account and region the pipeline definitions under test live in"""
    return Environment(account=InfraConfig.PIPELINE_ACCOUNT, region=InfraConfig.PIPELINE_REGION)


@pytest.fixture
def source_output():
    return Artifact("SourceOutput")


@pytest.fixture
def pipeline(pipeline_environment, source_output):
    """Pipeline definition with an S3 source stage already added"""
    definition = Pipeline(pipeline_environment)
    definition.add_stage(
        "Source",
        [
            S3SourceAction(
                "S3_Source",
                bucket=BucketReference.from_bucket_name("bucket"),
                bucket_key="key",
                output=source_output
            )
        ]
    )
    return definition
