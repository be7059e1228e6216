import json

import pytest
from botocore.exceptions import ClientError

import core_service
import external_service
import worker_service
from service_environment import (
    InvalidEnvironmentError,
    MissingEnvironmentError,
    ServiceEnvironment,
)
from handler_test_helpers import (
    PROXY_ENDPOINT,
    REDIS_ENDPOINT,
    SECRET_ARN,
    empty_service_env,
    lambda_context,
    service_env,
)

HTTP_EVENT = {
    "version": "2.0",
    "routeKey": "GET /core",
    "rawPath": "/core",
    "requestContext": {"http": {"method": "GET", "path": "/core"}, "stage": "$default"},
}


# ------------------- Environment contract -------------------


def test_environment_from_mapping():
    environment = ServiceEnvironment.from_env(
        {
            "DB_PROXY_ENDPOINT": PROXY_ENDPOINT,
            "REDIS_ENDPOINT": REDIS_ENDPOINT,
            "REDIS_PORT": "6380",
        }
    )
    assert environment.redis_port == 6380
    assert environment.redis_url == f"redis://{REDIS_ENDPOINT}:6380"
    assert environment.db_secret_arn is None
    assert environment.database_dsn("dbadmin") == (
        f"postgresql://dbadmin@{PROXY_ENDPOINT}:5432?sslmode=require"
    )


def test_environment_defaults_redis_port():
    environment = ServiceEnvironment.from_env(
        {"DB_PROXY_ENDPOINT": PROXY_ENDPOINT, "REDIS_ENDPOINT": REDIS_ENDPOINT}
    )
    assert environment.redis_port == 6379


def test_environment_reports_every_missing_variable():
    with pytest.raises(MissingEnvironmentError) as exc_info:
        ServiceEnvironment.from_env({"REDIS_ENDPOINT": ""})
    assert exc_info.value.missing == ["DB_PROXY_ENDPOINT", "REDIS_ENDPOINT"]
    assert "DB_PROXY_ENDPOINT, REDIS_ENDPOINT" in str(exc_info.value)


@pytest.mark.parametrize("port", ["redis", "-1", "0", "70000", "6379.0"])
def test_environment_rejects_malformed_redis_port(port):
    with pytest.raises(InvalidEnvironmentError) as exc_info:
        ServiceEnvironment.from_env(
            {
                "DB_PROXY_ENDPOINT": PROXY_ENDPOINT,
                "REDIS_ENDPOINT": REDIS_ENDPOINT,
                "REDIS_PORT": port,
            }
        )
    assert exc_info.value.name == "REDIS_PORT"
    assert repr(port) in str(exc_info.value)


# ------------------- Core service -------------------


def test_core_service_describes_backends(service_env, lambda_context):
    response = core_service.handler(HTTP_EVENT, lambda_context)

    assert response["statusCode"] == 200
    assert response["headers"] == {"Content-Type": "application/json"}
    body = json.loads(response["body"])
    assert body == {
        "service": "core",
        "route": "GET /core",
        "backends": {
            "database_proxy": PROXY_ENDPOINT,
            "cache": f"redis://{REDIS_ENDPOINT}:6379",
        },
    }


def test_core_service_fails_without_environment(empty_service_env, lambda_context):
    response = core_service.handler(HTTP_EVENT, lambda_context)

    assert response["statusCode"] == 500
    assert "DB_PROXY_ENDPOINT" in json.loads(response["body"])["message"]


def test_core_service_fails_on_malformed_port(service_env, lambda_context):
    service_env.setenv("REDIS_PORT", "not-a-port")

    response = core_service.handler(HTTP_EVENT, lambda_context)

    assert response["statusCode"] == 500
    assert "REDIS_PORT" in json.loads(response["body"])["message"]


# ------------------- Worker service -------------------


def test_worker_reports_ready(service_env, lambda_context):
    requested = []

    def fake_get_secret(name, transform=None):
        requested.append((name, transform))
        return {"username": "dbadmin", "password": "not-used"}

    service_env.setattr(worker_service.parameters, "get_secret", fake_get_secret)

    response = worker_service.handler({"task": "warmup"}, lambda_context)

    assert requested == [(SECRET_ARN, "json")]
    assert response == {
        "statusCode": 200,
        "status": "ready",
        "database": f"postgresql://dbadmin@{PROXY_ENDPOINT}:5432/appdb?sslmode=require",
        "cache": f"redis://{REDIS_ENDPOINT}:6379",
    }
    assert "not-used" not in json.dumps(response)


def test_worker_maps_secrets_manager_errors(service_env, lambda_context):
    def fake_get_secret(name, transform=None):
        raise ClientError(
            {
                "Error": {"Code": "AccessDeniedException", "Message": "not authorized"},
                "ResponseMetadata": {"HTTPStatusCode": 400},
            },
            "GetSecretValue",
        )

    service_env.setattr(worker_service.parameters, "get_secret", fake_get_secret)

    response = worker_service.handler({}, lambda_context)

    assert response == {
        "statusCode": 400,
        "error": "AccessDeniedException",
        "message": "not authorized",
    }


def test_worker_requires_secret_arn(service_env, lambda_context):
    service_env.delenv("DB_SECRET_ARN")

    response = worker_service.handler({}, lambda_context)

    assert response["statusCode"] == 500
    assert response["message"] == "Database secret is not configured"


def test_worker_fails_without_environment(empty_service_env, lambda_context):
    response = worker_service.handler({}, lambda_context)

    assert response["statusCode"] == 500
    assert "REDIS_ENDPOINT" in response["message"]


def test_worker_handles_malformed_secret(service_env, lambda_context):
    service_env.setattr(
        worker_service.parameters, "get_secret", lambda name, transform=None: {"password": "x"}
    )

    response = worker_service.handler({}, lambda_context)

    assert response["statusCode"] == 500


# ------------------- External service -------------------


def test_external_service_reports_public_placement(service_env, lambda_context):
    response = external_service.handler({"source": "scheduler"}, lambda_context)

    assert response["statusCode"] == 200
    assert response["network"] == "public"
    assert response["backends"]["database_proxy"] == PROXY_ENDPOINT


def test_external_service_fails_without_environment(empty_service_env, lambda_context):
    response = external_service.handler({}, lambda_context)

    assert response["statusCode"] == 500


def test_handlers_share_response_status_key(service_env, lambda_context):
    service_env.setattr(
        worker_service.parameters,
        "get_secret",
        lambda name, transform=None: {"username": "dbadmin", "password": "x"},
    )
    responses = [
        core_service.handler(HTTP_EVENT, lambda_context),
        worker_service.handler({}, lambda_context),
        external_service.handler({}, lambda_context),
    ]
    assert all(response["statusCode"] == 200 for response in responses)
    assert not any("status_code" in response for response in responses)
