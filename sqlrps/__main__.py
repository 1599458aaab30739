import sys

from sqlrps.cli import main

if __name__ == "__main__":
    sys.exit(main())
