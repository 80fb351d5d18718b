"""
Pytest configuration and shared fixtures.
This file ensures the project root is in sys.path for imports and points
the application at a throwaway in-memory database before anything imports
the settings.
"""

import os
import sys
from pathlib import Path

# Add project root to sys.path so we can import domain, services, etc.
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["ENVIRONMENT"] = "testing"
os.environ["CHAT_AUTO_REPLY_ENABLED"] = "false"
os.environ["DB_INIT_ATTEMPTS"] = "1"
