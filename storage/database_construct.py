from aws_cdk import (
    Duration,
    RemovalPolicy,
    SecretValue,
    aws_ec2 as ec2,
    aws_rds as rds,
    aws_secretsmanager as secretsmanager,
)
from constructs import Construct

from common import constants
from common.stack_context import StackContext


class DatabaseConstruct(Construct):
    """PostgreSQL instance fronted by an RDS Proxy.

    The master credentials live in a Secrets Manager secret built from the
    ``username``/``password`` inputs. The password is only ever carried as a
    CloudFormation dynamic reference to a ``NoEcho`` parameter.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        context: StackContext,
        vpc: ec2.IVpc,
        vpc_subnets: ec2.SubnetSelection,
        database_sg: ec2.ISecurityGroup,
        proxy_sg: ec2.ISecurityGroup,
        username: str,
        password: SecretValue,
    ) -> None:
        super().__init__(scope, construct_id)
        self.context = context

        self.secret = self._build_secret(username, password)
        self.instance = self._build_instance(vpc, vpc_subnets, database_sg)
        self.proxy = self._build_proxy(vpc, vpc_subnets, proxy_sg)

    @property
    def proxy_endpoint(self) -> str:
        return self.proxy.endpoint

    @property
    def database_name(self) -> str:
        return constants.DB_NAME

    def _build_secret(self, username: str, password: SecretValue) -> secretsmanager.Secret:
        """Secret in the username/password JSON shape RDS and RDS Proxy expect."""
        secret = secretsmanager.Secret(
            self,
            self.context.build_resource_id("DbSecret"),
            secret_name=self.context.build_resource_name("db-credentials"),
            description="Master credentials for the platform PostgreSQL instance",
            secret_object_value={
                "username": SecretValue.unsafe_plain_text(username),
                "password": password,
            },
        )
        secret.apply_removal_policy(self.context.removal_policy)
        return secret

    def _build_instance(
        self,
        vpc: ec2.IVpc,
        vpc_subnets: ec2.SubnetSelection,
        database_sg: ec2.ISecurityGroup,
    ) -> rds.DatabaseInstance:
        production = self.context.is_production
        return rds.DatabaseInstance(
            self,
            self.context.build_resource_id("Database"),
            instance_identifier=self.context.build_resource_name("postgres"),
            engine=rds.DatabaseInstanceEngine.postgres(
                version=rds.PostgresEngineVersion.VER_16_3
            ),
            instance_type=ec2.InstanceType.of(
                ec2.InstanceClass.T3, ec2.InstanceSize.MICRO
            ),
            credentials=rds.Credentials.from_secret(self.secret),
            database_name=constants.DB_NAME,
            port=constants.DB_PORT,
            allocated_storage=constants.DB_ALLOCATED_STORAGE_GB,
            storage_encrypted=True,
            publicly_accessible=False,
            multi_az=production,
            vpc=vpc,
            vpc_subnets=vpc_subnets,
            security_groups=[database_sg],
            backup_retention=Duration.days(constants.DB_BACKUP_RETENTION_DAYS),
            deletion_protection=production,
            removal_policy=RemovalPolicy.SNAPSHOT if production else RemovalPolicy.DESTROY,
        )

    def _build_proxy(
        self,
        vpc: ec2.IVpc,
        vpc_subnets: ec2.SubnetSelection,
        proxy_sg: ec2.ISecurityGroup,
    ) -> rds.DatabaseProxy:
        return rds.DatabaseProxy(
            self,
            self.context.build_resource_id("DbProxy"),
            proxy_target=rds.ProxyTarget.from_instance(self.instance),
            secrets=[self.secret],
            db_proxy_name=self.context.build_resource_name("proxy"),
            vpc=vpc,
            vpc_subnets=vpc_subnets,
            security_groups=[proxy_sg],
            require_tls=True,
        )
