"""
Readiness Gate Construct

When the Data API is called immediately after the writer instance is
created, it fails with "HttpEndpoint is not enabled for resource ...". This
construct creates an asynchronous custom resource that depends on the
writer instance and only completes once a settling delay has passed since
the writer became active and the Data API answers a probe query.
"""

from constructs import Construct
from aws_cdk import (
    aws_lambda as lambda_,
    aws_logs as logs,
    aws_rds as rds,
    aws_secretsmanager as secretsmanager,
    CustomResource,
    Duration,
    custom_resources as cr
)

from .database_initializer import bootstrap_code


class ReadinessGateConstruct(Construct):
    """One-shot gate that delays the first initialization step until the cluster is queryable."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        aurora_cluster: rds.DatabaseCluster,
        writer_instance: Construct,
        database_credentials_secret: secretsmanager.ISecret,
        database_name: str,
        postgresql_layer: lambda_.ILayerVersion,
        min_delay: Duration = Duration.seconds(60),
        total_timeout: Duration = Duration.minutes(15),
        **kwargs
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        on_event_lambda = self._create_handler("OnEventLambda", "gate_on_event", Duration.seconds(30), postgresql_layer)
        is_complete_lambda = self._create_handler(
            "IsCompleteLambda", "gate_is_complete", Duration.minutes(1), postgresql_layer
        )

        # The probe runs SELECT 1 through the Data API
        aurora_cluster.grant_data_api_access(is_complete_lambda)
        database_credentials_secret.grant_read(is_complete_lambda)

        provider = cr.Provider(
            self,
            "ReadinessGateProvider",
            on_event_handler=on_event_lambda,
            is_complete_handler=is_complete_lambda,
            query_interval=Duration.seconds(15),
            total_timeout=total_timeout,
            log_retention=logs.RetentionDays.ONE_WEEK
        )

        self.custom_resource = CustomResource(
            self,
            "WaitForHttpEndpointReady",
            service_token=provider.service_token,
            properties={
                "ClusterArn": aurora_cluster.cluster_arn,
                "CredentialsSecretArn": database_credentials_secret.secret_arn,
                "DatabaseName": database_name,
                "ReadinessDelaySeconds": str(min_delay.to_seconds()),
            }
        )

        # The Create event of the gate marks the moment the writer became active
        self.custom_resource.node.add_dependency(writer_instance)

    def _create_handler(
        self,
        construct_id: str,
        handler_name: str,
        timeout: Duration,
        postgresql_layer: lambda_.ILayerVersion
    ) -> lambda_.Function:
        return lambda_.Function(
            self,
            construct_id,
            runtime=lambda_.Runtime.PYTHON_3_11,
            handler=f"aurora_pgvector.bootstrap.handler.{handler_name}",
            code=bootstrap_code(),
            timeout=timeout,
            layers=[postgresql_layer],
            environment={
                "LOG_LEVEL": "INFO"
            },
            log_retention=logs.RetentionDays.ONE_WEEK,
            description="Readiness gate for the first database initialization step"
        )

    def get_custom_resource(self) -> CustomResource:
        """Return the gate custom resource."""
        return self.custom_resource
