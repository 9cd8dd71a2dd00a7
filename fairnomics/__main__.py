"""Allow running the package as a module: python -m fairnomics"""

import sys

from fairnomics.cli import main

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
