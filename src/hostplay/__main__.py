"""Allow ``python -m hostplay``."""

import sys

from hostplay.cli.main import main

sys.exit(main())
