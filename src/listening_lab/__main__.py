"""Entry point for ``python -m src.listening_lab``."""

import sys

from .cli import main

sys.exit(main())
