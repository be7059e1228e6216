import json
import os
from typing import Any

from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext

from service_environment import ServiceEnvironment, ServiceEnvironmentError

logger = Logger(service="core-service", level=os.getenv("LOG_LEVEL", "INFO").upper())
tracer = Tracer(service="core-service")


def _json_response(status_code: int, body: dict[str, Any]) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


@logger.inject_lambda_context
@tracer.capture_lambda_handler
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    return describe_backends(event=event)


def describe_backends(event: dict[str, Any]) -> dict[str, Any]:
    """Answer ``GET /core`` with the backends this function is wired to."""
    route = event.get("routeKey", "unknown")
    try:
        environment = ServiceEnvironment.from_env()
    except ServiceEnvironmentError as e:
        logger.error("Service environment invalid", error=str(e), route=route)
        return _json_response(500, {"message": str(e)})

    logger.info("Resolved service backends", route=route)
    return _json_response(
        200,
        {
            "service": "core",
            "route": route,
            "backends": environment.describe(),
        },
    )
