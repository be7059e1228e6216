from dataclasses import dataclass
from typing import Any, Mapping, Optional
from aws_cdk.assertions import Match, Template
from service_platform.service_platform_stack import ServicePlatformStack
from aws_cdk import App
import pytest

# Synthesize without running Docker; asset bundling is exercised at deploy time.
SKIP_BUNDLING_CONTEXT = {"aws:cdk:bundling-stacks": []}


# ------------------- Test Case Data Classes -------------------
@dataclass(frozen=True)
class LambdaTestCase:
    id: str
    function_name: str
    handler: str
    memory_size: int
    timeout: int
    extra_env: Mapping[str, Any]


@dataclass(frozen=True)
class LogGroupTestCase:
    id: str
    log_group_name: str
    retention_days: int


@dataclass(frozen=True)
class UpdateDeletePolicyTestCase:
    id: str
    update_policy: str
    delete_policy: str


@dataclass(frozen=True)
class IngressTestCase:
    id: str
    port: int
    target_group: str
    source_group: str


# ------------------- Helper Functions -------------------


def find_resources_by_type(
    template: Template, resource_type: str, props: Optional[dict] = None
) -> Mapping[str, Any]:

    return template.find_resources(resource_type, props=props)


def get_single_resource_id(
    resources: Mapping[str, Any], resource_type: str = "resource"
) -> str:
    assert len(resources) == 1, f"expected exactly one {resource_type}, found {len(resources)}"
    return next(iter(resources))


def find_function(template: Template, function_name: str) -> Mapping[str, Any]:
    functions = find_resources_by_type(
        template,
        "AWS::Lambda::Function",
        {"Properties": {"FunctionName": function_name}},
    )
    return functions[get_single_resource_id(functions, function_name)]


def build_stack(
    stack_id: str = "TestServicePlatformStack", deploy_env: str = "dev", **kwargs
) -> ServicePlatformStack:
    app = App(context=SKIP_BUNDLING_CONTEXT)
    return ServicePlatformStack(app, stack_id, deploy_env=deploy_env, **kwargs)


def build_template(stack_id: str = "TestServicePlatformStack", deploy_env: str = "dev"):
    return Template.from_stack(build_stack(stack_id, deploy_env=deploy_env))


def get_att(logical_id_pattern: str, attribute: str) -> Mapping[str, Any]:
    return {"Fn::GetAtt": [Match.string_like_regexp(logical_id_pattern), attribute]}


# ------------------- Pytest Fixtures -------------------


@pytest.fixture(scope="module")
def template() -> Template:
    return build_template()


@pytest.fixture(scope="module")
def json_template(template: Template) -> Mapping[str, Any]:
    return template.to_json()


def expected_lambda_props(case: LambdaTestCase) -> Mapping[str, Any]:
    return {
        "FunctionName": Match.string_like_regexp(case.function_name),
        "Handler": case.handler,
        "Runtime": "python3.12",
        "MemorySize": case.memory_size,
        "Timeout": case.timeout,
        "Architectures": ["x86_64"],
        "Code": {
            "S3Bucket": Match.any_value(),
            "S3Key": Match.any_value(),
        },
        "TracingConfig": {"Mode": "Active"},
        "Environment": {
            "Variables": {
                "LOG_LEVEL": "INFO",
                "DB_PROXY_ENDPOINT": get_att(r".*PlatformBackendDbproxy.*", "Endpoint"),
                "REDIS_ENDPOINT": get_att(
                    r".*PlatformBackendCache[0-9A-F]+$", "RedisEndpoint.Address"
                ),
                "REDIS_PORT": get_att(
                    r".*PlatformBackendCache[0-9A-F]+$", "RedisEndpoint.Port"
                ),
                **case.extra_env,
            }
        },
    }
