#!/usr/bin/env python3
import os
import aws_cdk as cdk
from stacks.api_stack import WaitlistApiStack

app = cdk.App()

env = cdk.Environment(
    account=os.getenv("CDK_DEFAULT_ACCOUNT"),
    region=os.getenv("CDK_DEFAULT_REGION", "us-east-1")
)

table_name = app.node.try_get_context("table_name") or "waitlist"
allowed_origins = app.node.try_get_context("allowed_origins") or "*"
app_env = app.node.try_get_context("app_env") or "production"

# Lambda + API Gateway + DynamoDB table keyed by email
WaitlistApiStack(app, "WaitlistApiStack",
                 env=env,
                 table_name=table_name,
                 allowed_origins=allowed_origins,
                 app_env=app_env,
                 enable_xray=True)

app.synth()
