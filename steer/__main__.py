"""Entry point for python -m steer."""

import sys

from steer.cli import main

if __name__ == "__main__":
    sys.exit(main())
