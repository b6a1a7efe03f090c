import os
from pathlib import Path

from .constants import DATA_DIR, DB_FILE_NAME

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_PATH = Path(os.environ.get("BILLBOOK_DATA_DIR", BASE_DIR / DATA_DIR))
DB_PATH = Path(os.environ.get("BILLBOOK_DB_PATH", DATA_PATH / DB_FILE_NAME))

# Upload + messaging backend (the delivery gateway talks to it)
API_BASE_URL = os.environ.get("BILLBOOK_API_URL", "http://localhost:5000").rstrip("/")
HTTP_TIMEOUT = float(os.environ.get("BILLBOOK_HTTP_TIMEOUT", "30"))

LOG_LEVEL = os.environ.get("BILLBOOK_LOG_LEVEL", "INFO").upper()
