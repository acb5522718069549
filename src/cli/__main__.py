"""Allow ``python -m src.cli`` execution."""

import sys

from src.cli.catalog import main

sys.exit(main())
