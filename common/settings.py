"""Deployment settings resolved from CDK context and the CLI environment.

The CDK CLI exports ``CDK_DEFAULT_ACCOUNT`` and ``CDK_DEFAULT_REGION`` for the
active profile. Context values (``cdk synth -c env=prod -c region=eu-west-1``)
take precedence over them.
"""
import os
from typing import Optional

from attrs import define, field
from attrs.validators import in_, instance_of, matches_re, optional
from aws_cdk import App, Environment

import common.constants as constants


@define(slots=True, frozen=True, kw_only=True)
class DeploymentSettings:
    env: str = field(
        default=constants.DEFAULT_ENV,
        converter=str.lower,
        validator=in_(constants.ENVIRONMENTS),
    )
    region: str = field(
        default=constants.DEFAULT_REGION,
        validator=[instance_of(str), matches_re(constants.REGION_PATTERN)],
    )
    account: Optional[str] = field(default=None, validator=optional(instance_of(str)))

    @classmethod
    def from_app(cls, app: App) -> "DeploymentSettings":
        node = app.node
        env = (
            node.try_get_context("env")
            or os.getenv("DEPLOY_ENV")
            or constants.DEFAULT_ENV
        )
        region = (
            node.try_get_context("region")
            or os.getenv("CDK_DEFAULT_REGION")
            or constants.DEFAULT_REGION
        )
        return cls(env=env, region=region, account=os.getenv("CDK_DEFAULT_ACCOUNT"))

    @property
    def is_production(self) -> bool:
        return self.env == constants.PROD_ENV

    def to_environment(self) -> Environment:
        return Environment(account=self.account, region=self.region)
