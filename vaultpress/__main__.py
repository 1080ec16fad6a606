"""Allow ``python -m vaultpress``."""

import sys

from .app import main

sys.exit(main())
