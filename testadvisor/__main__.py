"""Allow ``python -m testadvisor``."""

import sys

from testadvisor.cli import main

if __name__ == "__main__":
    sys.exit(main())
