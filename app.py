#!/usr/bin/env python3
import os

import aws_cdk as cdk

from pipeline_cdk.config import configure_logging
from pipeline_cdk.pipeline_cdk_stack import PipelineCdkStack

configure_logging()

app = cdk.App()
PipelineCdkStack(
    app, "PipelineCdkStack",
    env=cdk.Environment(
        account=os.getenv("CDK_DEFAULT_ACCOUNT"),
        region=os.getenv("CDK_DEFAULT_REGION")
    )
)

app.synth()
