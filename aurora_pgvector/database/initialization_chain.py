"""
Initialization Chain Construct

Orders the initialization resources of a cluster as a linked chain of
CloudFormation dependencies: every resource added to the chain depends on
the previous one, so CloudFormation only starts it once the previous
resource has completed. The first resource depends on the readiness gate,
which is created together with it. An empty chain creates nothing.
"""

from typing import List, Optional

from constructs import Construct
from aws_cdk import (
    aws_lambda as lambda_,
    aws_rds as rds,
    aws_secretsmanager as secretsmanager,
    Duration,
    custom_resources as cr
)

from .readiness_gate import ReadinessGateConstruct


def _dependency_target(construct: Construct) -> Construct:
    # Depend on the CloudFormation resource itself, not on every child (roles, policies)
    return construct.node.default_child or construct


class InitializationChain(Construct):
    """Serial chain of initialization resources behind a readiness gate."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        aurora_cluster: rds.DatabaseCluster,
        writer_instance: Construct,
        database_credentials_secret: secretsmanager.ISecret,
        database_name: str,
        postgresql_layer: lambda_.ILayerVersion,
        readiness_delay: Duration = Duration.seconds(60),
        **kwargs
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.aurora_cluster = aurora_cluster
        self.writer_instance = writer_instance
        self.database_credentials_secret = database_credentials_secret
        self.database_name = database_name
        self.postgresql_layer = postgresql_layer
        self.readiness_delay = readiness_delay

        self.gate: Optional[ReadinessGateConstruct] = None
        self.resources: List[Construct] = []
        self._queries = 0

    def add_resource(self, resource: Construct) -> Construct:
        """
        Append a resource to the chain.

        Args:
            resource: Construct whose default child is a CloudFormation resource

        Returns:
            The resource
        """
        if self.resources:
            # We assume each step must run serially, not in parallel.
            previous = self.resources[-1]
        else:
            previous = self._create_gate().get_custom_resource()

        _dependency_target(resource).node.add_dependency(_dependency_target(previous))
        self.resources.append(resource)
        return resource

    def run_query(self, sql: str, database: Optional[str] = None) -> cr.AwsCustomResource:
        """
        Append an RDS Data API ExecuteStatement call to the chain.

        The statement runs on Create and on every Update, so it must be
        idempotent (e.g. IF NOT EXISTS).

        Args:
            sql: Statement to execute
            database: Target database (defaults to the cluster's default database)

        Returns:
            The custom resource running the statement
        """
        parameters = {
            "resourceArn": self.aurora_cluster.cluster_arn,
            "secretArn": self.database_credentials_secret.secret_arn,
            "sql": sql,
        }
        if database:
            parameters["database"] = database

        query = cr.AwsCustomResource(
            self,
            f"Query{self._queries}",
            on_update=cr.AwsSdkCall(
                # will also be called for a CREATE event
                service="rds-data",
                action="ExecuteStatement",
                parameters=parameters,
                physical_resource_id=cr.PhysicalResourceId.of(self.aurora_cluster.cluster_arn)
            ),
            policy=cr.AwsCustomResourcePolicy.from_sdk_calls(
                resources=[self.aurora_cluster.cluster_arn]
            )
        )
        self._queries += 1

        self.database_credentials_secret.grant_read(query)
        self.aurora_cluster.grant_data_api_access(query)

        return self.add_resource(query)

    def _create_gate(self) -> ReadinessGateConstruct:
        if self.gate is None:
            self.gate = ReadinessGateConstruct(
                self,
                "ReadinessGate",
                aurora_cluster=self.aurora_cluster,
                writer_instance=self.writer_instance,
                database_credentials_secret=self.database_credentials_secret,
                database_name=self.database_name,
                postgresql_layer=self.postgresql_layer,
                min_delay=self.readiness_delay
            )
        return self.gate
