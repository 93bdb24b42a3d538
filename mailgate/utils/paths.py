"""Centralized path definitions for mailgate.

All runtime files live under a single home directory, ``~/.mailgate`` by
default, or ``$MAILGATE_HOME`` when set.
"""

import os
from pathlib import Path

# Base application directory
MAILGATE_DIR = Path(os.environ.get("MAILGATE_HOME", Path.home() / ".mailgate"))

# Subdirectories
LOGS_DIR = MAILGATE_DIR / "logs"

# Specific files
CONFIG_PATH = MAILGATE_DIR / "config.json"
