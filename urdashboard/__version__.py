"""Definition file for various version numbers."""

import os

# Version number for urdashboard
_version_file = os.path.join(os.path.dirname(__file__), "version.txt")
with open(_version_file, "r", encoding="utf-8") as f:
  __version__ = f.read().strip()

# Dashboard server port, identical on CB3 and e-Series controllers.
DASHBOARD_SERVER_PORT = 29999
