import os
from typing import Any

from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext

from service_environment import ServiceEnvironment, ServiceEnvironmentError

logger = Logger(service="external-service", level=os.getenv("LOG_LEVEL", "INFO").upper())
tracer = Tracer(service="external-service")


@logger.inject_lambda_context
@tracer.capture_lambda_handler
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    # Runs outside the VPC: the injected addresses are informational only,
    # the private proxy and cache are not reachable from here.
    try:
        environment = ServiceEnvironment.from_env()
    except ServiceEnvironmentError as e:
        logger.error("Service environment invalid", error=str(e))
        return {"statusCode": 500, "message": str(e)}

    logger.info("External integration invoked", source=event.get("source"))
    return {
        "statusCode": 200,
        "service": "external",
        "network": "public",
        "backends": environment.describe(),
    }
