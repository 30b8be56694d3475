#!/usr/bin/env python3
"""
Run the SQL to StatsD poller from a source checkout.

Usage:
    ./scripts/sql_statsd.py config/sql-statsd.example.yml --debug --once
"""

import sys
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.cli import main


if __name__ == "__main__":
    sys.exit(main())
