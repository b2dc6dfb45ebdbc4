"""
Database constructs for the Aurora pgvector cluster

This package contains constructs for:
- Aurora PostgreSQL Serverless v2 cluster
- Readiness gate delaying the first initialization step
- Initialization chain ordering the initialization resources
- Custom resource Lambda creating the pgvector database and extensions
"""

from .aurora_cluster import AuroraClusterConstruct
from .database_initializer import DatabaseInitializerConstruct
from .initialization_chain import InitializationChain
from .readiness_gate import ReadinessGateConstruct

__all__ = [
    "AuroraClusterConstruct",
    "DatabaseInitializerConstruct",
    "InitializationChain",
    "ReadinessGateConstruct"
]
