"""Allow ``python -m docportal.cli`` execution."""

import sys

from docportal.cli.ingest import main

sys.exit(main())
