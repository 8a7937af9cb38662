import os
from pathlib import Path

DB_PATH = os.environ.get("PAGETRAIL_DB_PATH", str(Path.cwd() / "pagetrail.db"))
DATABASE_URL = f"sqlite+aiosqlite:///{DB_PATH}"

LOG_LEVEL = os.environ.get("PAGETRAIL_LOG_LEVEL", "INFO").upper()
