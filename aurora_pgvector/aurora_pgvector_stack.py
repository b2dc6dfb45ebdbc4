"""
Aurora pgvector Stack

This stack provisions an Aurora PostgreSQL Serverless v2 cluster and
initializes it for application use: once the writer instance is active and
the cluster answers queries, a custom resource creates the secondary
database and installs the pgvector and uuid-ossp extensions.
"""

from typing import Any, Optional
import aws_cdk as cdk
from constructs import Construct
from aws_cdk import (
    Stack,
    CfnOutput,
    Duration
)

from .config import StackConfig

# Import networking constructs
from .networking.vpc_construct import VpcConstruct
from .networking.security_groups import SecurityGroupsConstruct

# Import database constructs
from .database.aurora_cluster import AuroraClusterConstruct

# Import layer constructs
from .layers.psycopg2_layer import DependenciesLayerConstruct


class AuroraPgVectorStack(Stack):
    """
    Main CDK Stack for the Aurora pgvector cluster

    This stack orchestrates:
    - VPC and networking infrastructure
    - Aurora PostgreSQL cluster
    - Readiness gate and database initializer custom resources
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: Optional[StackConfig] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.config = config or StackConfig.from_context(self.node)

        # Add stack-level tags
        cdk.Tags.of(self).add("Project", "AuroraPgVector")
        cdk.Tags.of(self).add("Environment", self.config.environment)

        # Create VPC and networking infrastructure
        self.vpc_construct = VpcConstruct(self, "VpcConstruct")
        self.vpc = self.vpc_construct.get_vpc()

        # Create security groups for all components
        self.security_groups = SecurityGroupsConstruct(
            self,
            "SecurityGroups",
            vpc=self.vpc
        )
        self.lambda_security_group = self.security_groups.get_lambda_security_group()
        self.aurora_security_group = self.security_groups.get_aurora_security_group()

        self.vpc_construct.add_secrets_manager_endpoint(
            self.security_groups.get_vpc_endpoint_security_group()
        )

        # Create dependencies Lambda layer
        self.dependencies_layer_construct = DependenciesLayerConstruct(
            self,
            "DependenciesLayer"
        )
        self.dependencies_layer = self.dependencies_layer_construct.get_layer()

        # Create Aurora PostgreSQL cluster and its initialization chain
        self.aurora_cluster = AuroraClusterConstruct(
            self,
            "Postgres",
            vpc=self.vpc,
            database_subnets=self.vpc_construct.get_database_subnets(),
            private_subnets=self.vpc_construct.get_private_subnets(),
            security_group=self.aurora_security_group,
            lambda_security_group=self.lambda_security_group,
            postgresql_layer=self.dependencies_layer,
            scales_to_zero=self.config.scales_to_zero,
            create_bastion=self.config.create_bastion,
            primary_database_name=self.config.primary_database_name,
            secondary_database_name=self.config.secondary_database_name,
            extensions=self.config.extensions,
            readiness_delay=Duration.seconds(self.config.readiness_delay_seconds),
            connect_timeout_seconds=self.config.connect_timeout_seconds,
            post_init_statements=self.config.post_init_statements
        )

        # Store cluster references for the application tier
        self.cluster = self.aurora_cluster.get_cluster()
        self.database_credentials = self.aurora_cluster.get_credentials_secret()
        self.connection_info = self.aurora_cluster.connection_info()

        CfnOutput(
            self,
            "Region",
            value=self.region,
            description="AWS region where the stack is deployed"
        )
