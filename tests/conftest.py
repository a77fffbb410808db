"""
Main conftest file that imports and re-exports all fixtures from modular files.
This approach improves maintainability by organizing fixtures into logical modules.
"""

import os

from dotenv import load_dotenv

# Load the test environment before importing any app modules; variables that
# are already set (e.g. a CI database URL) win over the file.
dotenv_path = os.path.join(os.path.dirname(__file__), "..", ".env.test")
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path=dotenv_path, override=False)
else:
    print(f"Warning: .env.test file not found at {dotenv_path}")

# Import and re-export fixtures from modular files
from tests.fixtures.client import client  # noqa: E402,F401
from tests.fixtures.db import db_session, db_engine  # noqa: E402,F401
from tests.fixtures.helpers import seeded  # noqa: E402,F401
