"""
Security Groups for the Aurora pgvector cluster

Three groups: the database initializer Lambda, the Aurora cluster and the
Secrets Manager VPC endpoint. The Lambda group is the only peer admitted
by the other two.
"""

from constructs import Construct
from aws_cdk import (
    aws_ec2 as ec2,
    Tags
)


class SecurityGroupsConstruct(Construct):
    """Least-privilege security groups between the initializer, the cluster and the endpoint."""

    def __init__(self, scope: Construct, construct_id: str, vpc: ec2.Vpc) -> None:
        super().__init__(scope, construct_id)

        self.vpc = vpc

        # Lambda reaches Secrets Manager and the cluster; the others never initiate connections
        self.lambda_security_group = self._security_group(
            "LambdaSecurityGroup", "Database initializer Lambda", "Lambda", allow_all_outbound=True
        )
        self.aurora_security_group = self._security_group(
            "AuroraSecurityGroup", "Aurora PostgreSQL cluster", "Aurora"
        )
        self.vpc_endpoint_security_group = self._security_group(
            "VpcEndpointSecurityGroup", "Secrets Manager VPC endpoint", "VpcEndpoint"
        )

        self.aurora_security_group.add_ingress_rule(
            peer=self.lambda_security_group,
            connection=ec2.Port.tcp(5432),
            description="PostgreSQL from the database initializer"
        )
        self.vpc_endpoint_security_group.add_ingress_rule(
            peer=self.lambda_security_group,
            connection=ec2.Port.tcp(443),
            description="HTTPS from Lambda to VPC endpoints"
        )

    def _security_group(
        self,
        construct_id: str,
        description: str,
        component: str,
        allow_all_outbound: bool = False
    ) -> ec2.SecurityGroup:
        security_group = ec2.SecurityGroup(
            self,
            construct_id,
            vpc=self.vpc,
            description=f"Security group for the {description}",
            allow_all_outbound=allow_all_outbound
        )
        Tags.of(security_group).add("Component", component)
        return security_group

    def get_lambda_security_group(self) -> ec2.SecurityGroup:
        """Return the Lambda security group."""
        return self.lambda_security_group

    def get_aurora_security_group(self) -> ec2.SecurityGroup:
        """Return the Aurora security group."""
        return self.aurora_security_group

    def get_vpc_endpoint_security_group(self) -> ec2.SecurityGroup:
        """Return the VPC endpoint security group."""
        return self.vpc_endpoint_security_group
