#!/usr/bin/env python

import sys

from stl_scaler.cli import main


if __name__ == "__main__":
    sys.exit(main())
