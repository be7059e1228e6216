from aws_cdk import aws_ec2 as ec2, aws_elasticache as elasticache
from constructs import Construct

from common import constants
from common.stack_context import StackContext


class CacheConstruct(Construct):
    """Single-node Redis cluster in the private subnets."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        context: StackContext,
        vpc: ec2.IVpc,
        vpc_subnets: ec2.SubnetSelection,
        cache_sg: ec2.ISecurityGroup,
    ) -> None:
        super().__init__(scope, construct_id)
        self.context = context

        self.subnet_group = self._build_subnet_group(vpc, vpc_subnets)
        self.cluster = self._build_cluster(self.subnet_group, cache_sg)

    @property
    def endpoint_address(self) -> str:
        return self.cluster.attr_redis_endpoint_address

    @property
    def endpoint_port(self) -> str:
        return self.cluster.attr_redis_endpoint_port

    def _build_subnet_group(
        self, vpc: ec2.IVpc, vpc_subnets: ec2.SubnetSelection
    ) -> elasticache.CfnSubnetGroup:
        return elasticache.CfnSubnetGroup(
            self,
            self.context.build_resource_id("CacheSubnetGroup"),
            cache_subnet_group_name=self.context.build_resource_name("cache-subnets"),
            description="Private subnets for the platform Redis cluster",
            subnet_ids=vpc.select_subnets(
                subnet_type=vpc_subnets.subnet_type
            ).subnet_ids,
        )

    def _build_cluster(
        self,
        subnet_group: elasticache.CfnSubnetGroup,
        cache_sg: ec2.ISecurityGroup,
    ) -> elasticache.CfnCacheCluster:
        cluster = elasticache.CfnCacheCluster(
            self,
            self.context.build_resource_id("Cache"),
            cluster_name=self.context.build_resource_name("redis"),
            engine=constants.CACHE_ENGINE,
            cache_node_type=constants.CACHE_NODE_TYPE,
            num_cache_nodes=constants.CACHE_NODE_COUNT,
            port=constants.CACHE_PORT,
            cache_subnet_group_name=subnet_group.ref,
            vpc_security_group_ids=[cache_sg.security_group_id],
        )
        cluster.add_dependency(subnet_group)
        return cluster
