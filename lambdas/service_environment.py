import os
from typing import Mapping, Optional

from attrs import define, field
from attrs.validators import instance_of, optional

DB_PROXY_ENDPOINT = "DB_PROXY_ENDPOINT"
REDIS_ENDPOINT = "REDIS_ENDPOINT"
REDIS_PORT = "REDIS_PORT"
DB_SECRET_ARN = "DB_SECRET_ARN"
DB_NAME = "DB_NAME"

REQUIRED_VARIABLES = (DB_PROXY_ENDPOINT, REDIS_ENDPOINT)
DEFAULT_REDIS_PORT = 6379
DEFAULT_DB_PORT = 5432


class ServiceEnvironmentError(RuntimeError):
    pass


class MissingEnvironmentError(ServiceEnvironmentError):
    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing required environment variables: {', '.join(missing)}")


class InvalidEnvironmentError(ServiceEnvironmentError):
    def __init__(self, name: str, value: str) -> None:
        self.name = name
        self.value = value
        super().__init__(f"Invalid value for environment variable {name}: {value!r}")


def _parse_port(name: str, value: Optional[str], default: int) -> int:
    if not value:
        return default
    if not value.isdecimal() or not 0 < int(value) < 65536:
        raise InvalidEnvironmentError(name, value)
    return int(value)


@define(slots=True, kw_only=True, frozen=True)
class ServiceEnvironment:
    db_proxy_endpoint: str = field(validator=instance_of(str))
    redis_endpoint: str = field(validator=instance_of(str))
    redis_port: int = field(default=DEFAULT_REDIS_PORT, validator=instance_of(int))
    db_secret_arn: Optional[str] = field(default=None, validator=optional(instance_of(str)))
    db_name: Optional[str] = field(default=None, validator=optional(instance_of(str)))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServiceEnvironment":
        """Read the variables injected at deployment time.

        Raises MissingEnvironmentError listing every required variable that is
        unset or empty, and InvalidEnvironmentError for a malformed port.
        """
        environ = os.environ if environ is None else environ
        missing = [name for name in REQUIRED_VARIABLES if not environ.get(name)]
        if missing:
            raise MissingEnvironmentError(missing)
        return cls(
            db_proxy_endpoint=environ[DB_PROXY_ENDPOINT],
            redis_endpoint=environ[REDIS_ENDPOINT],
            redis_port=_parse_port(REDIS_PORT, environ.get(REDIS_PORT), DEFAULT_REDIS_PORT),
            db_secret_arn=environ.get(DB_SECRET_ARN) or None,
            db_name=environ.get(DB_NAME) or None,
        )

    @property
    def redis_url(self) -> str:
        return f"redis://{self.redis_endpoint}:{self.redis_port}"

    def database_dsn(self, username: str) -> str:
        database = f"/{self.db_name}" if self.db_name else ""
        return f"postgresql://{username}@{self.db_proxy_endpoint}:{DEFAULT_DB_PORT}{database}?sslmode=require"

    def describe(self) -> dict[str, str]:
        return {
            "database_proxy": self.db_proxy_endpoint,
            "cache": self.redis_url,
        }
