#!/usr/bin/env python3
"""AWS CDK entrypoint for provisioning the service platform.

Deployment settings come from CDK context (``-c env=prod -c region=eu-west-1``)
and fall back to the CDK CLI defaults for the active profile. The database
credentials are stack parameters supplied at deploy time, e.g.
``cdk deploy --parameters DbPassword=...``.
"""
import aws_cdk as cdk

from common.settings import DeploymentSettings
from service_platform.service_platform_stack import ServicePlatformStack

app = cdk.App()

settings = DeploymentSettings.from_app(app)

ServicePlatformStack(
    app,
    "ServicePlatformStack",
    deploy_env=settings.env,
    env=settings.to_environment(),
)

app.synth()
