from aws_cdk import aws_lambda as _lambda

POWER_TOOLS_PYTHON_RUNTIME = "python312"
POWER_TOOLS_LAMBDA_LAYER_NAME = "AWSLambdaPowertoolsPythonV3"
POWER_TOOLS_LAMBDA_LAYER_ACCOUNT = "017000801446"
POWER_TOOLS_VERSION = "18"
POWER_TOOLS_ARCHITECTURE = "x86_64"
POWER_TOOLS_LAYER = "arn:aws:lambda:{region}:{lambda_layer_account}:layer:{power_tools_type}-{runtime}-{architecture}:{version}"

PYTHON_RUNTIME = _lambda.Runtime.PYTHON_3_12
DEFAULT_ARCHITECTURE = _lambda.Architecture.X86_64
LAMBDA_CODE_SRC = "lambdas"
COMMON_LAYER_SRC = "layers/common"
COMMON_LAYER_BUILD_COMMAND = "pip install -r requirements.txt -t /asset-output/python"

DEFAULT_ENV = "dev"
PROD_ENV = "prod"
ENVIRONMENTS = ("dev", "staging", "prod")
DEFAULT_REGION = "us-east-1"
REGION_PATTERN = r"^[a-z]{2}(-gov)?-[a-z]+-\d$"

# Naming convention components
SERVICE_NAME = "platform"  # The application name
COMPONENT = "backend"  # The functional component/subsystem

# Compute unit actions (used in naming)
ACTION_CORE = "core"  # Serves the HTTP entry point
ACTION_WORKER = "worker"  # Background work against the datastore
ACTION_EXTERNAL = "external"  # Talks to third parties, runs outside the VPC

# Networking
VPC_NAME = "platform-vpc"
VPC_CIDR = "10.0.0.0/16"
MAX_AZS = 2
PUBLIC_SUBNET_NAME = "Public-Subnet"
PRIVATE_SUBNET_NAME = "Private-Subnet"
CIDR_MASK = 24
ANY_IPV4_CIDR = "0.0.0.0/0"
HTTPS_PORT = 443

# Database
DB_NAME = "appdb"
DB_PORT = 5432
DB_ALLOCATED_STORAGE_GB = 20
DB_BACKUP_RETENTION_DAYS = 7
DEFAULT_DB_USERNAME = "dbadmin"
DB_USERNAME_PATTERN = "^[a-zA-Z][a-zA-Z0-9_]*$"
DB_USERNAME_MAX_LENGTH = 63
DB_PASSWORD_MIN_LENGTH = 8
DB_PASSWORD_MAX_LENGTH = 128
# RDS rejects / @ " ' and spaces; \ would also break the secret JSON
DB_PASSWORD_PATTERN = r"""^[^\s/@"'\\]+$"""

# Cache
CACHE_ENGINE = "redis"
CACHE_NODE_TYPE = "cache.t3.micro"
CACHE_NODE_COUNT = 1
CACHE_PORT = 6379

# HTTP entry point
CORE_ROUTE_PATH = "/core"

# Compute unit environment contract
ENV_DB_PROXY_ENDPOINT = "DB_PROXY_ENDPOINT"
ENV_REDIS_ENDPOINT = "REDIS_ENDPOINT"
ENV_REDIS_PORT = "REDIS_PORT"
ENV_DB_SECRET_ARN = "DB_SECRET_ARN"
ENV_DB_NAME = "DB_NAME"
ENV_LOG_LEVEL = "LOG_LEVEL"
