from aws_cdk import aws_ec2 as ec2
from constructs import Construct

from common import constants
from common.stack_context import StackContext


class NetworkConstruct(Construct):
    """VPC, security groups and private endpoints shared by the platform.

    Public subnets route through the internet gateway. Private subnets are
    isolated: no NAT, so anything in them reaches AWS APIs through VPC
    endpoints only.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        context: StackContext,
        vpc: ec2.IVpc | None = None,
    ) -> None:
        super().__init__(scope, construct_id)
        self.context = context

        self.vpc = vpc or self.create_vpc()
        self.private_subnets = ec2.SubnetSelection(
            subnet_type=ec2.SubnetType.PRIVATE_ISOLATED
        )

        self.functions_sg = self.create_functions_sg()
        self.proxy_sg = self.create_proxy_sg(self.functions_sg)
        self.database_sg = self.create_database_sg(self.proxy_sg)
        self.cache_sg = self.create_cache_sg(self.functions_sg)
        self.endpoints_sg = self.create_endpoints_sg(self.functions_sg)
        self.vpc_endpoint()

    def create_vpc(self) -> ec2.Vpc:
        return ec2.Vpc(
            self,
            "PlatformVPC",
            nat_gateways=0,
            max_azs=constants.MAX_AZS,
            vpc_name=constants.VPC_NAME,
            restrict_default_security_group=False,
            ip_addresses=ec2.IpAddresses.cidr(constants.VPC_CIDR),
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name=constants.PUBLIC_SUBNET_NAME,
                    subnet_type=ec2.SubnetType.PUBLIC,
                    cidr_mask=constants.CIDR_MASK,
                ),
                ec2.SubnetConfiguration(
                    name=constants.PRIVATE_SUBNET_NAME,
                    subnet_type=ec2.SubnetType.PRIVATE_ISOLATED,
                    cidr_mask=constants.CIDR_MASK,
                ),
            ],
        )

    def _security_group(
        self, action: str, description: str, allow_all_outbound: bool = False
    ) -> ec2.SecurityGroup:
        return ec2.SecurityGroup(
            self,
            id=self.context.build_resource_id("SG", action=action),
            vpc=self.vpc,
            security_group_name=self.context.build_resource_name("sg", action=action),
            allow_all_outbound=allow_all_outbound,
            description=description,
        )

    def create_functions_sg(self) -> ec2.SecurityGroup:
        return self._security_group(
            "functions",
            "Security group for the VPC-bound Lambda functions",
            allow_all_outbound=True,
        )

    def create_proxy_sg(self, functions_sg: ec2.ISecurityGroup) -> ec2.SecurityGroup:
        proxy_sg = self._security_group(
            "proxy", "Security group for the RDS Proxy", allow_all_outbound=True
        )
        proxy_sg.add_ingress_rule(
            peer=functions_sg,
            connection=ec2.Port.tcp(constants.DB_PORT),
            description="Allow PostgreSQL (TCP/5432) from the Lambda functions",
        )
        return proxy_sg

    def create_database_sg(self, proxy_sg: ec2.ISecurityGroup) -> ec2.SecurityGroup:
        database_sg = self._security_group(
            "database", "Security group for the PostgreSQL instance"
        )
        database_sg.add_ingress_rule(
            peer=proxy_sg,
            connection=ec2.Port.tcp(constants.DB_PORT),
            description="Allow PostgreSQL (TCP/5432) from the RDS Proxy only",
        )
        return database_sg

    def create_cache_sg(self, functions_sg: ec2.ISecurityGroup) -> ec2.SecurityGroup:
        cache_sg = self._security_group(
            "cache", "Security group for the Redis cache cluster"
        )
        cache_sg.add_ingress_rule(
            peer=functions_sg,
            connection=ec2.Port.tcp(constants.CACHE_PORT),
            description="Allow Redis (TCP/6379) from the Lambda functions",
        )
        return cache_sg

    def create_endpoints_sg(self, functions_sg: ec2.ISecurityGroup) -> ec2.SecurityGroup:
        endpoints_sg = self._security_group(
            "endpoints", "Security group for the interface VPC endpoints"
        )
        endpoints_sg.add_ingress_rule(
            peer=functions_sg,
            connection=ec2.Port.tcp(constants.HTTPS_PORT),
            description="Allow HTTPS (TCP/443) from the Lambda functions",
        )
        return endpoints_sg

    def vpc_endpoint(self) -> ec2.InterfaceVpcEndpoint:
        """Secrets Manager endpoint so isolated functions can read the DB secret."""
        return self.vpc.add_interface_endpoint(
            "SecretsManagerEndpoint",
            service=ec2.InterfaceVpcEndpointAwsService.SECRETS_MANAGER,
            subnets=self.private_subnets,
            security_groups=[self.endpoints_sg],
            open=False,
        )
