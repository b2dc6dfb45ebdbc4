#!/usr/bin/env python3
"""
Install the psycopg2 layer dependencies without Docker.

Downloads manylinux wheels matching the Lambda runtime into
aurora_pgvector/layers/postgresql/python so ``cdk deploy`` packages them
into the layer used by the readiness gate and initializer functions.

Usage:
    python setup_dependencies.py          # install
    python setup_dependencies.py clean    # remove installed packages
"""

import shutil
import subprocess
import sys
from pathlib import Path

LAYER_DIR = Path(__file__).parent / "aurora_pgvector" / "layers" / "postgresql"
PYTHON_DIR = LAYER_DIR / "python"
REQUIREMENTS_FILE = LAYER_DIR / "requirements.txt"

LAMBDA_PLATFORM = "manylinux2014_x86_64"
LAMBDA_PYTHON_VERSION = "3.11"


def install_dependencies() -> bool:
    """Install the layer requirements for the Lambda platform."""
    if not REQUIREMENTS_FILE.exists():
        print(f"Error: {REQUIREMENTS_FILE} not found")
        return False

    PYTHON_DIR.mkdir(parents=True, exist_ok=True)

    cmd = [
        sys.executable, "-m", "pip", "install",
        "--target", str(PYTHON_DIR),
        "--platform", LAMBDA_PLATFORM,
        "--python-version", LAMBDA_PYTHON_VERSION,
        "--only-binary=:all:",
        "--upgrade",
        "-r", str(REQUIREMENTS_FILE),
    ]
    print(f"Installing {REQUIREMENTS_FILE} into {PYTHON_DIR}")

    try:
        subprocess.run(cmd, check=True, capture_output=True, text=True)  # pylint: disable=dangerous-subprocess-use-audit
    except subprocess.CalledProcessError as e:
        print(f"Error installing dependencies: {e}")
        print(f"stderr: {e.stderr}")
        return False

    installed = sorted(path.name for path in PYTHON_DIR.iterdir() if path.is_dir())
    print(f"Installed {len(installed)} packages: {', '.join(installed)}")
    return True


def clean_dependencies() -> None:
    """Remove everything installed into the layer."""
    if PYTHON_DIR.exists():
        print(f"Cleaning existing dependencies in {PYTHON_DIR}")
        shutil.rmtree(PYTHON_DIR)
    PYTHON_DIR.mkdir(parents=True, exist_ok=True)


def main() -> None:
    if len(sys.argv) > 1 and sys.argv[1] == "clean":
        clean_dependencies()
        print("Dependencies cleaned.")
        return

    if not install_dependencies():
        print("\nFailed to install dependencies. Make sure pip is available.")
        sys.exit(1)

    print("\nDependencies installed. Run 'cdk deploy' to deploy the stack.")


if __name__ == "__main__":
    main()
