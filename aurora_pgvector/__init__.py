"""
Aurora PostgreSQL cluster with an initialized pgvector database.

The CDK constructs live in the subpackages; ``aurora_pgvector.bootstrap``
is the runtime shipped to the custom resource Lambda functions.
"""

__version__ = "0.1.0"
