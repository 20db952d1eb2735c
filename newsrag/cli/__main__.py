"""Allow ``python -m newsrag.cli`` execution."""

import sys

from newsrag.cli.main import main

sys.exit(main())
