"""Module entry point. Allows python -m src."""

import sys

from src.etl.pipeline.cli import main

if __name__ == "__main__":
    sys.exit(main())
