import os
from typing import Any

from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.utilities import parameters
from aws_lambda_powertools.utilities.typing import LambdaContext
from botocore.exceptions import ClientError

from service_environment import ServiceEnvironment, ServiceEnvironmentError

logger = Logger(service="worker-service", level=os.getenv("LOG_LEVEL", "INFO").upper())
tracer = Tracer(service="worker-service")


def _error_response(e: ClientError) -> dict[str, Any]:
    response = e.response or {}
    error_info = response.get("Error", {})
    meta_data = response.get("ResponseMetadata", {})
    return {
        "statusCode": meta_data.get("HTTPStatusCode", 500),
        "error": error_info.get("Code", "UnknownError"),
        "message": error_info.get("Message", "Unknown"),
    }


@logger.inject_lambda_context
@tracer.capture_lambda_handler
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    return check_readiness(event=event)


@tracer.capture_method
def _load_credentials(secret_arn: str) -> dict[str, Any]:
    return parameters.get_secret(secret_arn, transform="json")


def check_readiness(event: dict[str, Any]) -> dict[str, Any]:
    """Confirm the worker can resolve its datastore credentials and backends."""
    try:
        environment = ServiceEnvironment.from_env()
        if not environment.db_secret_arn:
            logger.error("DB_SECRET_ARN environment variable not set")
            return {"statusCode": 500, "message": "Database secret is not configured"}

        credentials = _load_credentials(environment.db_secret_arn)
        username = credentials["username"]
        logger.info("Retrieved database credentials from Secrets Manager", task=event.get("task"))
        return {
            "statusCode": 200,
            "status": "ready",
            "database": environment.database_dsn(username),
            "cache": environment.redis_url,
        }

    except ServiceEnvironmentError as e:
        logger.error("Service environment invalid", error=str(e))
        return {"statusCode": 500, "message": str(e)}
    except ClientError as e:
        logger.exception("Failed to retrieve the database secret")
        return _error_response(e)
    except Exception as e:
        logger.exception("Unhandled exception in worker readiness check")
        return {"statusCode": 500, "message": str(e)}
