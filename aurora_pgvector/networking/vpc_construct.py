"""
VPC Construct for the Aurora pgvector cluster

This construct creates a VPC with public, private and isolated subnets,
a NAT Gateway for Lambda egress and, on request, a Secrets Manager VPC
endpoint so the initializer Lambda can read database credentials without
leaving the VPC.
"""

from typing import List
from constructs import Construct
from aws_cdk import (
    aws_ec2 as ec2,
    CfnOutput,
    Tags
)


class VpcConstruct(Construct):
    """
    VPC construct that creates networking infrastructure for the cluster.

    Creates:
    - VPC with public, private and isolated subnets across 2 AZs
    - NAT Gateway in a public subnet for Lambda egress
    - Secrets Manager interface endpoint (add_secrets_manager_endpoint)
    """

    def __init__(self, scope: Construct, construct_id: str) -> None:
        super().__init__(scope, construct_id)

        self.vpc = ec2.Vpc(
            self,
            "Vpc",
            ip_addresses=ec2.IpAddresses.cidr("10.0.0.0/16"),
            max_azs=2,
            nat_gateways=1,
            subnet_configuration=[
                # Public subnets for the NAT Gateway
                ec2.SubnetConfiguration(
                    name="Public",
                    subnet_type=ec2.SubnetType.PUBLIC,
                    cidr_mask=24,
                ),
                # Private subnets for Lambda functions and the bastion host
                ec2.SubnetConfiguration(
                    name="Private",
                    subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS,
                    cidr_mask=24,
                ),
                # Isolated subnets for the Aurora cluster
                ec2.SubnetConfiguration(
                    name="Database",
                    subnet_type=ec2.SubnetType.PRIVATE_ISOLATED,
                    cidr_mask=24,
                ),
            ],
            enable_dns_hostnames=True,
            enable_dns_support=True,
        )

        Tags.of(self.vpc).add("Purpose", "AuroraPgVector")

        self.private_subnets = self.vpc.private_subnets
        self.database_subnets = self.vpc.isolated_subnets

        CfnOutput(
            scope,
            "VpcId",
            value=self.vpc.vpc_id,
            description="ID of the VPC"
        )

    def get_vpc(self) -> ec2.Vpc:
        """Return the VPC instance."""
        return self.vpc

    def get_private_subnets(self) -> List[ec2.ISubnet]:
        """Return private subnets for Lambda functions."""
        return self.private_subnets

    def get_database_subnets(self) -> List[ec2.ISubnet]:
        """Return isolated subnets for the Aurora cluster."""
        return self.database_subnets

    def add_secrets_manager_endpoint(self, security_group: ec2.SecurityGroup) -> ec2.InterfaceVpcEndpoint:
        """
        Create the Secrets Manager interface endpoint for database credentials.

        Args:
            security_group: Security group admitting HTTPS from the Lambda functions

        Returns:
            The interface endpoint
        """
        self.secrets_manager_endpoint = ec2.InterfaceVpcEndpoint(
            self,
            "SecretsManagerEndpoint",
            vpc=self.vpc,
            service=ec2.InterfaceVpcEndpointAwsService.SECRETS_MANAGER,
            subnets=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS),
            security_groups=[security_group],
            private_dns_enabled=True
        )
        return self.secrets_manager_endpoint
