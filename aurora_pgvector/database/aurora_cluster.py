"""
Aurora PostgreSQL Cluster Construct

This construct creates an Aurora PostgreSQL Serverless v2 cluster with a
default primary database, the Data API enabled and master credentials in
Secrets Manager. After creation, an initialization chain creates the
secondary database with the pgvector and uuid-ossp extensions.
"""

from typing import Dict, List, Optional, Sequence
from constructs import Construct
from aws_cdk import (
    aws_rds as rds,
    aws_ec2 as ec2,
    aws_lambda as lambda_,
    aws_secretsmanager as secretsmanager,
    CfnOutput,
    RemovalPolicy,
    Duration,
    Stack,
    Tags,
    Token
)
from .database_initializer import DatabaseInitializerConstruct
from .initialization_chain import InitializationChain


class AuroraClusterConstruct(Construct):
    """
    Aurora PostgreSQL cluster construct.

    Creates:
    - Aurora PostgreSQL Serverless v2 cluster (optionally scaling to zero)
    - Parameter group terminating idle sessions so the cluster can auto-pause
    - Master credentials stored in Secrets Manager
    - Initialization chain: readiness gate, then the database initializer,
      then any post-initialization statements
    - Optional bastion host for port forwarding through SSM
    """

    writer_id = "Writer"

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        vpc: ec2.Vpc,
        database_subnets: List[ec2.ISubnet],
        private_subnets: List[ec2.ISubnet],
        security_group: ec2.SecurityGroup,
        lambda_security_group: ec2.SecurityGroup,
        postgresql_layer: lambda_.ILayerVersion,
        scales_to_zero: bool = False,
        create_bastion: bool = False,
        primary_database_name: str = "main",
        secondary_database_name: str = "pgvector",
        extensions: Sequence[str] = ("vector", "uuid-ossp"),
        readiness_delay: Duration = Duration.seconds(60),
        connect_timeout_seconds: int = 10,
        post_init_statements: Sequence[str] = (),
        **kwargs
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.vpc = vpc
        self.database_subnets = database_subnets
        self.private_subnets = private_subnets
        self.security_group = security_group
        self.lambda_security_group = lambda_security_group
        self.postgresql_layer = postgresql_layer
        self.scales_to_zero = scales_to_zero
        self.database_name = primary_database_name
        self.pgvector_database_name = secondary_database_name
        self.bastion_host: Optional[ec2.BastionHostLinux] = None

        # Create database credentials in Secrets Manager
        self._create_database_credentials()

        # Create parameter group
        self._create_parameter_group()

        # Create Aurora PostgreSQL cluster
        self._create_aurora_cluster()

        if create_bastion:
            self._create_bastion_host(scope)

        # Create the initialization chain: gate -> initializer -> statements
        self._create_initialization(
            extensions,
            readiness_delay,
            connect_timeout_seconds,
            post_init_statements
        )

        # Create outputs
        self._create_outputs(scope)

    def _create_database_credentials(self) -> None:
        """Create database master credentials in Secrets Manager."""
        self.database_credentials = secretsmanager.Secret(
            self,
            "DatabaseCredentials",
            description="Master credentials for the Aurora pgvector cluster",
            generate_secret_string=secretsmanager.SecretStringGenerator(
                secret_string_template='{"username": "postgres"}',
                generate_string_key="password",
                exclude_characters=' %+~`#$&*()|[]{}:;<>?!\'/@"\\',
                password_length=32,
                include_space=False
            ),
            removal_policy=RemovalPolicy.DESTROY
        )

        Tags.of(self.database_credentials).add("Component", "Database")

    def _create_parameter_group(self) -> None:
        """Create the cluster parameter group."""
        self.parameter_group = rds.ParameterGroup(
            self,
            "ParameterGroup",
            engine=self._engine(),
            description="Parameter group for the Aurora pgvector cluster",
            parameters={
                # Terminate idle session for Aurora Serverless V2 auto-pause
                "idle_session_timeout": "60000"
            }
        )

    def _create_aurora_cluster(self) -> None:
        """Create Aurora PostgreSQL Serverless v2 cluster."""
        self.cluster = rds.DatabaseCluster(
            self,
            "Cluster",
            engine=self._engine(),
            credentials=rds.Credentials.from_secret(self.database_credentials),
            parameter_group=self.parameter_group,
            security_groups=[self.security_group],

            # Serverless v2 configuration
            writer=rds.ClusterInstance.serverless_v2(
                self.writer_id,
                publicly_accessible=False,
                auto_minor_version_upgrade=True
            ),
            serverless_v2_min_capacity=0 if self.scales_to_zero else 0.5,
            serverless_v2_max_capacity=2.0,

            # Security and networking
            vpc=self.vpc,
            vpc_subnets=ec2.SubnetSelection(subnets=self.database_subnets),
            port=5432,

            removal_policy=RemovalPolicy.DESTROY,
            storage_encrypted=True,

            # Data API is used by the readiness probe and post-initialization statements
            enable_data_api=True,

            default_database_name=self.database_name
        )

        Tags.of(self.cluster).add("Component", "Database")
        Tags.of(self.cluster).add("Extension", "pgvector")

    def _create_bastion_host(self, scope: Construct) -> None:
        """Create a bastion host and outputs for port forwarding to the cluster."""
        self.bastion_host = ec2.BastionHostLinux(
            self,
            "BastionHost",
            vpc=self.vpc,
            machine_image=ec2.MachineImage.latest_amazon_linux2023(
                cpu_type=ec2.AmazonLinuxCpuType.ARM_64
            ),
            instance_type=ec2.InstanceType.of(ec2.InstanceClass.T4G, ec2.InstanceSize.NANO),
            block_devices=[
                ec2.BlockDevice(
                    device_name="/dev/sdf",
                    volume=ec2.BlockDeviceVolume.ebs(8, encrypted=True)
                )
            ]
        )
        self.cluster.connections.allow_default_port_from(self.bastion_host)

        region = Stack.of(self).region
        port = Token.as_string(self.cluster.cluster_endpoint.port)
        hostname = self.cluster.cluster_endpoint.hostname

        CfnOutput(
            scope,
            "PortForwardCommand",
            value=(
                f"aws ssm start-session --region {region} --target {self.bastion_host.instance_id} "
                f"--document-name AWS-StartPortForwardingSessionToRemoteHost "
                f"--parameters '{{\"portNumber\":[\"{port}\"], \"localPortNumber\":[\"{port}\"], "
                f"\"host\": [\"{hostname}\"]}}'"
            ),
            description="Command forwarding the cluster port to localhost through the bastion host"
        )

        CfnOutput(
            scope,
            "DatabaseSecretsCommand",
            value=(
                f"aws secretsmanager get-secret-value --secret-id {self.database_credentials.secret_name} "
                f"--region {region}"
            ),
            description="Command printing the database credentials"
        )

    def _create_initialization(
        self,
        extensions: Sequence[str],
        readiness_delay: Duration,
        connect_timeout_seconds: int,
        post_init_statements: Sequence[str]
    ) -> None:
        """Create the database initializer behind the readiness gate."""
        writer_instance = self.cluster.node.find_child(self.writer_id).node.default_child

        self.initialization_chain = InitializationChain(
            self,
            "Initialization",
            aurora_cluster=self.cluster,
            writer_instance=writer_instance,
            database_credentials_secret=self.database_credentials,
            database_name=self.database_name,
            postgresql_layer=self.postgresql_layer,
            readiness_delay=readiness_delay
        )

        self.database_initializer = DatabaseInitializerConstruct(
            self,
            "DatabaseInitializer",
            vpc=self.vpc,
            lambda_subnets=self.private_subnets,
            lambda_security_group=self.lambda_security_group,
            aurora_cluster=self.cluster,
            database_credentials_secret=self.database_credentials,
            postgresql_layer=self.postgresql_layer,
            secondary_database_name=self.pgvector_database_name,
            extensions=extensions,
            connect_timeout_seconds=connect_timeout_seconds
        )
        self.initialization_chain.add_resource(self.database_initializer.get_custom_resource())

        for statement in post_init_statements:
            self.initialization_chain.run_query(statement, self.pgvector_database_name)

    def _create_outputs(self, scope: Construct) -> None:
        """Create CloudFormation outputs for the application tier."""
        CfnOutput(
            scope,
            "AuroraClusterEndpoint",
            value=self.cluster.cluster_endpoint.hostname,
            description="Aurora cluster writer endpoint"
        )

        CfnOutput(
            scope,
            "AuroraClusterPort",
            value=Token.as_string(self.cluster.cluster_endpoint.port),
            description="Aurora cluster port"
        )

        CfnOutput(
            scope,
            "DatabaseCredentialsSecretArn",
            value=self.database_credentials.secret_arn,
            description="ARN of the database credentials secret"
        )

        CfnOutput(
            scope,
            "DatabaseName",
            value=self.database_name,
            description="Default database name"
        )

        CfnOutput(
            scope,
            "PgVectorDatabaseName",
            value=self.pgvector_database_name,
            description="Database with the pgvector extension installed"
        )

    @staticmethod
    def _engine() -> rds.IClusterEngine:
        return rds.DatabaseClusterEngine.aurora_postgres(
            version=rds.AuroraPostgresEngineVersion.VER_15_13
        )

    def connection_info(self) -> Dict[str, str]:
        """Return what an application needs to connect once initialization succeeded."""
        return {
            "host": self.cluster.cluster_endpoint.hostname,
            "port": Token.as_string(self.cluster.cluster_endpoint.port),
            "primaryDatabaseName": self.database_name,
            "secondaryDatabaseName": self.pgvector_database_name,
        }

    def get_cluster(self) -> rds.DatabaseCluster:
        """Return the Aurora cluster instance."""
        return self.cluster

    def get_credentials_secret(self) -> secretsmanager.Secret:
        """Return the database credentials secret."""
        return self.database_credentials
