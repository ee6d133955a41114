# =============================================================================
# Pigeon Entry Point for `python -m pigeon`
# =============================================================================
# This module allows Pigeon to be run as a Python module:
#
#   python -m pigeon
#
# This is equivalent to running the 'pigeon' command after installation.
# =============================================================================

import sys

from pigeon.app import main

if __name__ == "__main__":
    sys.exit(main())
