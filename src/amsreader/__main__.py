"""Allow running the reader with ``python -m amsreader``."""

import sys

from .cli import main

sys.exit(main())
