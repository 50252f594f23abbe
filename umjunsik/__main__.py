"""Allow `python -m umjunsik`."""

import sys

from .cli import main

sys.exit(main())
