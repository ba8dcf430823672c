#!/usr/bin/env python3
"""
UniBank Entry Point

Runs the JSON command line against the record files in the configured
data directory.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from unibank.cli import main


if __name__ == "__main__":
    sys.exit(main())
