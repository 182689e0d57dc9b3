"""Allow running the package as a module: python -m yield_optimizer"""

import sys

from yield_optimizer.cli import main

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
