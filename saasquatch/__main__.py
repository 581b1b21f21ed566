"""Allow ``python -m saasquatch``."""

import sys

from saasquatch.cli import main

sys.exit(main())
