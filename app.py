#!/usr/bin/env python3
"""
Aurora pgvector CDK Application

This application deploys an Aurora PostgreSQL Serverless v2 cluster and
initializes it for application use:
- a secondary "pgvector" database next to the default "main" database
- the vector and uuid-ossp extensions installed in it
"""

import aws_cdk as cdk
from aurora_pgvector.aurora_pgvector_stack import AuroraPgVectorStack
from aurora_pgvector.config import StackConfig


app = cdk.App()

config = StackConfig.from_context(app.node)

# Get environment configuration
env = cdk.Environment(
    account=config.account,
    region=config.region
)

# Deploy the main stack
AuroraPgVectorStack(
    app,
    "AuroraPgVectorStack",
    config=config,
    env=env,
    description="Aurora PostgreSQL cluster with an initialized pgvector database"
)

app.synth()
