"""
Entry point for the appd-config-manager package.

This module is called when the package is run as a script:
    python -m appd_config_manager
"""

import sys
from appd_config_manager.cli import main

if __name__ == '__main__':
    sys.exit(main())
