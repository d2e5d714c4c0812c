import sys

from glue_android.cli import main

if __name__ == "__main__":
    sys.exit(main())
