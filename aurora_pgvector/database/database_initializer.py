"""
Database Initializer Construct

Lambda-backed custom resource that ensures the secondary database exists on
the Aurora PostgreSQL cluster and that the required extensions (pgvector,
uuid-ossp) are installed in it. Create and Update run the same idempotent
initialization; Delete leaves the database untouched.
"""

import os
import time
from typing import List, Sequence

from constructs import Construct
from aws_cdk import (
    aws_lambda as lambda_,
    aws_iam as iam,
    aws_rds as rds,
    aws_ec2 as ec2,
    aws_secretsmanager as secretsmanager,
    aws_logs as logs,
    CustomResource,
    Duration,
    Tags,
    Token,
    custom_resources as cr
)

# Project root: the bootstrap runtime is imported as aurora_pgvector.bootstrap
BOOTSTRAP_CODE_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

BOOTSTRAP_CODE_EXCLUDES = [
    "*.pyc",
    "__pycache__",
    "*.md",
    ".git",
    ".venv",
    "cdk.out",
    "*.egg-info",
    ".pytest_cache",
    "tests",
    "aurora_pgvector/layers",
]


def bootstrap_code() -> lambda_.Code:
    """Return the Lambda asset containing the bootstrap runtime."""
    return lambda_.Code.from_asset(BOOTSTRAP_CODE_PATH, exclude=BOOTSTRAP_CODE_EXCLUDES)


class DatabaseInitializerConstruct(Construct):
    """
    Custom resource creating the secondary database and its extensions.

    The function runs inside the VPC because it talks to the cluster over
    the PostgreSQL protocol; it reads the master credentials from Secrets
    Manager through the VPC endpoint.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        vpc: ec2.Vpc,
        lambda_subnets: List[ec2.ISubnet],
        lambda_security_group: ec2.SecurityGroup,
        aurora_cluster: rds.DatabaseCluster,
        database_credentials_secret: secretsmanager.ISecret,
        postgresql_layer: lambda_.ILayerVersion,
        secondary_database_name: str = "pgvector",
        extensions: Sequence[str] = ("vector", "uuid-ossp"),
        connect_timeout_seconds: int = 10,
        **kwargs
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        if connect_timeout_seconds <= 0:
            raise ValueError("connect_timeout_seconds must be greater than 0")

        self.aurora_cluster = aurora_cluster
        self.database_credentials_secret = database_credentials_secret
        self.secondary_database_name = secondary_database_name
        self.extensions = list(extensions)
        self.connect_timeout_seconds = connect_timeout_seconds

        self.initializer_lambda = self._create_function(
            vpc, lambda_subnets, lambda_security_group, postgresql_layer
        )
        self.custom_resource = self._create_resource()

    def _create_function(
        self,
        vpc: ec2.Vpc,
        subnets: List[ec2.ISubnet],
        security_group: ec2.SecurityGroup,
        layer: lambda_.ILayerVersion
    ) -> lambda_.Function:
        role = iam.Role(
            self,
            "InitializerRole",
            assumed_by=iam.ServicePrincipal("lambda.amazonaws.com"),
            description="Role of the pgvector database initializer",
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name("service-role/AWSLambdaVPCAccessExecutionRole")
            ]
        )
        self.database_credentials_secret.grant_read(role)

        function = lambda_.Function(
            self,
            "InitializerFunction",
            runtime=lambda_.Runtime.PYTHON_3_11,
            handler="aurora_pgvector.bootstrap.handler.on_event",
            code=bootstrap_code(),
            role=role,
            timeout=Duration.minutes(5),
            memory_size=256,
            layers=[layer],
            vpc=vpc,
            vpc_subnets=ec2.SubnetSelection(subnets=subnets),
            security_groups=[security_group],
            environment={
                "LOG_LEVEL": "INFO",
                "DB_ADMIN_DATABASE": "postgres",
                "DB_CONNECT_TIMEOUT": str(self.connect_timeout_seconds),
            },
            log_retention=logs.RetentionDays.ONE_WEEK,
            description="Creates the secondary database and installs its extensions"
        )

        Tags.of(function).add("Component", "Database")
        Tags.of(function).add("Function", "Initialization")
        return function

    def _create_resource(self) -> CustomResource:
        provider = cr.Provider(
            self,
            "InitializerProvider",
            on_event_handler=self.initializer_lambda,
            log_retention=logs.RetentionDays.ONE_WEEK
        )

        resource = CustomResource(
            self,
            "PgVectorDatabase",
            service_token=provider.service_token,
            properties={
                "DatabaseHost": self.aurora_cluster.cluster_endpoint.hostname,
                "DatabasePort": Token.as_string(self.aurora_cluster.cluster_endpoint.port),
                "CredentialsSecretArn": self.database_credentials_secret.secret_arn,
                "SecondaryDatabaseName": self.secondary_database_name,
                "Extensions": self.extensions,
                "ConnectTimeoutSeconds": str(self.connect_timeout_seconds),
                # Changes on every synth so each deployment re-runs the initialization
                "Timestamp": str(int(time.time()))
            }
        )
        resource.node.add_dependency(self.aurora_cluster)

        Tags.of(resource).add("Component", "Database")
        return resource

    def get_custom_resource(self) -> CustomResource:
        """Return the custom resource instance."""
        return self.custom_resource
