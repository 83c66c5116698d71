from pathlib import Path


# Repository root (src/platform/constant -> root)
BASE_DIR = Path(__file__).resolve().parent.parent.parent.parent

# Rotated API and sweeper logs
LOG_DIR = BASE_DIR / 'logs'

# Local development database when DATABASE_URL is not set
DEFAULT_SQLITE_PATH = BASE_DIR / 'checkout.db'
