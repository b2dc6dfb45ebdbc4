"""
PostgreSQL Lambda Layer Construct

Lambda layer with psycopg2-binary for the readiness gate and database
initializer functions. Populate it with ``python setup_dependencies.py``
before deploying.
"""

import os
from constructs import Construct
from aws_cdk import (
    aws_lambda as _lambda,
    Tags
)

LAYER_DIR = os.path.join(os.path.dirname(__file__), "postgresql")


class DependenciesLayerConstruct(Construct):
    """Lambda layer built from layers/postgresql/python."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        **kwargs
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        _ensure_python_dir(LAYER_DIR)

        self.layer = _lambda.LayerVersion(
            self,
            "PostgreSQLLayer",
            code=_lambda.Code.from_asset(LAYER_DIR, exclude=["requirements.txt"]),
            compatible_runtimes=[
                _lambda.Runtime.PYTHON_3_11,
                _lambda.Runtime.PYTHON_3_12
            ],
            description="psycopg2 for database initialization"
        )
        Tags.of(self.layer).add("Component", "Layer")

    def get_layer(self) -> _lambda.LayerVersion:
        """Return the Lambda layer instance."""
        return self.layer


def _ensure_python_dir(layer_dir: str) -> None:
    # An empty asset directory cannot be packaged
    python_dir = os.path.join(layer_dir, "python")
    os.makedirs(python_dir, exist_ok=True)

    if not os.listdir(python_dir):
        with open(os.path.join(python_dir, "__init__.py"), "w") as f:
            f.write("# Populated by setup_dependencies.py\n")
