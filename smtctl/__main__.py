"""Allow running as python -m smtctl."""

import sys

from smtctl.cli import main

if __name__ == "__main__":
    sys.exit(main())
