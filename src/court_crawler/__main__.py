"""Main entry point for the court availability crawler."""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
