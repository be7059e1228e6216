from typing import Mapping, cast

from aws_cdk import (
    Annotations,
    BundlingOptions,
    CfnOutput,
    CfnParameter,
    Duration,
    SecretValue,
    Stack,
    Token,
    aws_apigatewayv2 as apigwv2,
    aws_apigatewayv2_integrations as apigwv2_integrations,
    aws_iam as iam,
    aws_lambda as _lambda,
)
from constructs import Construct

import common.constants as constants
from common.stack_context import StackContext
from networking.network_construct import NetworkConstruct
from storage.cache_construct import CacheConstruct
from storage.database_construct import DatabaseConstruct


class ServicePlatformStack(Stack):

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        deploy_env: str = constants.DEFAULT_ENV,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.context = StackContext(scope=self, env=deploy_env)
        self.aws_region = self.context.aws_region

        if self.context.is_production and Token.is_unresolved(self.account):
            Annotations.of(self).add_warning(
                "Production stack has no explicit account; set CDK_DEFAULT_ACCOUNT or pass env"
            )

        # Deployment inputs
        self.db_username, self.db_password = self._build_parameters()

        # Configure Lambda code and layers
        self.code = _lambda.Code.from_asset(constants.LAMBDA_CODE_SRC)
        self.layers = [
            _lambda.LayerVersion.from_layer_version_arn(
                self,
                self.context.build_resource_id("LambdaPowerToolsLayer"),
                layer_version_arn=self.context.build_power_tools_layer_arn(),
            ),
            self._build_common_layer(),
        ]

        # VPC, subnets and security groups
        self.network = NetworkConstruct(self, "Network", context=self.context)

        # PostgreSQL behind RDS Proxy
        self.database = DatabaseConstruct(
            self,
            "Database",
            context=self.context,
            vpc=self.network.vpc,
            vpc_subnets=self.network.private_subnets,
            database_sg=self.network.database_sg,
            proxy_sg=self.network.proxy_sg,
            username=self.db_username.value_as_string,
            password=SecretValue.cfn_parameter(self.db_password),
        )

        # Redis cache cluster
        self.cache = CacheConstruct(
            self,
            "Cache",
            context=self.context,
            vpc=self.network.vpc,
            vpc_subnets=self.network.private_subnets,
            cache_sg=self.network.cache_sg,
        )

        # Compute units
        self.core_lambda = self._build_service_lambda(
            action=constants.ACTION_CORE,
            handler="core_service.handler",
            description="Serves the platform HTTP API behind API Gateway",
            memory_size=512,
            timeout=Duration.seconds(30),
            in_vpc=True,
        )
        self.worker_lambda = self._build_service_lambda(
            action=constants.ACTION_WORKER,
            handler="worker_service.handler",
            description="Runs background work against the database proxy and cache",
            memory_size=256,
            timeout=Duration.seconds(60),
            in_vpc=True,
        )
        # Outside the VPC so it can reach third-party APIs without a NAT
        self.external_lambda = self._build_service_lambda(
            action=constants.ACTION_EXTERNAL,
            handler="external_service.handler",
            description="Integrates with external services over the public internet",
            memory_size=256,
            timeout=Duration.seconds(30),
            in_vpc=False,
        )

        # Permissions
        self.database.secret.grant_read(self.core_lambda)
        self.database.secret.grant_read(self.worker_lambda)

        # API Gateway
        self.http_api = self._build_api_gateway_http_api(core_lambda=self.core_lambda)

        CfnOutput(
            self,
            "ApiUrl",
            value=cast(str, self.http_api.url),
            description="Invocation URL of the platform HTTP API",
        )

    # Resource creation

    def _build_parameters(self) -> tuple[CfnParameter, CfnParameter]:
        db_username = CfnParameter(
            self,
            "DbUsername",
            type="String",
            default=constants.DEFAULT_DB_USERNAME,
            allowed_pattern=constants.DB_USERNAME_PATTERN,
            max_length=constants.DB_USERNAME_MAX_LENGTH,
            description="Master username for the PostgreSQL instance",
        )
        db_password = CfnParameter(
            self,
            "DbPassword",
            type="String",
            no_echo=True,
            min_length=constants.DB_PASSWORD_MIN_LENGTH,
            max_length=constants.DB_PASSWORD_MAX_LENGTH,
            allowed_pattern=constants.DB_PASSWORD_PATTERN,
            constraint_description=(
                "8-128 characters, no spaces and none of / @ \" ' \\"
            ),
            description="Master password for the PostgreSQL instance",
        )
        return db_username, db_password

    def _build_common_layer(self) -> _lambda.LayerVersion:
        """Third-party packages the handlers import beyond Powertools and boto3."""
        return _lambda.LayerVersion(
            self,
            self.context.build_resource_id("CommonLayer"),
            layer_version_name=self.context.build_resource_name("common-layer"),
            code=_lambda.Code.from_asset(
                constants.COMMON_LAYER_SRC,
                bundling=BundlingOptions(
                    image=constants.PYTHON_RUNTIME.bundling_image,
                    command=["bash", "-c", constants.COMMON_LAYER_BUILD_COMMAND],
                ),
            ),
            compatible_runtimes=[constants.PYTHON_RUNTIME],
            compatible_architectures=[constants.DEFAULT_ARCHITECTURE],
            description="Shared handler dependencies installed from requirements.txt",
        )

    def _build_lambda_role(self, action: str, in_vpc: bool) -> iam.Role:
        managed_policies = [
            iam.ManagedPolicy.from_aws_managed_policy_name(
                "service-role/AWSLambdaBasicExecutionRole"
            )
        ]
        if in_vpc:
            managed_policies.append(
                iam.ManagedPolicy.from_aws_managed_policy_name(
                    "service-role/AWSLambdaVPCAccessExecutionRole"
                )
            )
        return iam.Role(
            self,
            self.context.build_resource_id("Role", action=action),
            role_name=self.context.build_resource_name("role", action=action),
            assumed_by=cast(iam.IPrincipal, iam.ServicePrincipal("lambda.amazonaws.com")),
            managed_policies=managed_policies,
        )

    def _build_lambda_environment(self, in_vpc: bool) -> Mapping[str, str]:
        environment = {
            constants.ENV_LOG_LEVEL: "INFO",
            constants.ENV_DB_PROXY_ENDPOINT: self.database.proxy_endpoint,
            constants.ENV_REDIS_ENDPOINT: self.cache.endpoint_address,
            constants.ENV_REDIS_PORT: self.cache.endpoint_port,
        }
        if in_vpc:
            environment[constants.ENV_DB_SECRET_ARN] = self.database.secret.secret_arn
            environment[constants.ENV_DB_NAME] = self.database.database_name
        return environment

    def _build_service_lambda(
        self,
        action: str,
        handler: str,
        description: str,
        memory_size: int,
        timeout: Duration,
        in_vpc: bool,
    ) -> _lambda.Function:
        log_group = self.context.build_log_group("Function", action=action)
        network_config = {}
        if in_vpc:
            network_config = {
                "vpc": self.network.vpc,
                "vpc_subnets": self.network.private_subnets,
                "security_groups": [self.network.functions_sg],
            }
        return _lambda.Function(
            self,
            self.context.build_resource_id("Function", action=action),
            function_name=self.context.build_resource_name("Function", action=action),
            runtime=constants.PYTHON_RUNTIME,
            handler=handler,
            code=self.code,
            architecture=constants.DEFAULT_ARCHITECTURE,
            description=description,
            role=self._build_lambda_role(action, in_vpc),
            layers=self.layers,
            environment=dict(self._build_lambda_environment(in_vpc)),
            timeout=timeout,
            memory_size=memory_size,
            tracing=_lambda.Tracing.ACTIVE,
            log_group=log_group,
            **network_config,
        )

    def _build_api_gateway_http_api(self, core_lambda: _lambda.Function) -> apigwv2.HttpApi:
        """Create HTTP API and integrate its single route with the core Lambda."""
        http_api = apigwv2.HttpApi(
            self,
            self.context.build_resource_id("API"),
            api_name=self.context.build_resource_name("API"),
            create_default_stage=True,
        )

        # Define Lambda integration
        integration = apigwv2_integrations.HttpLambdaIntegration(
            self.context.build_resource_id("Integration"),
            handler=cast(_lambda.IFunction, core_lambda),
        )

        # Add route
        http_api.add_routes(
            path=constants.CORE_ROUTE_PATH,
            methods=[apigwv2.HttpMethod.GET],
            integration=integration,
        )

        return http_api
