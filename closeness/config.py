import os
from pathlib import Path


def _load_dotenv(path: Path) -> None:
    """Read ``KEY=VALUE`` lines from a .env file into the environment.

    Variables that are already set are left untouched.
    """

    if not path.exists():
        return

    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if key and key not in os.environ:
            os.environ[key] = value.strip()

# Project root
BASE_DIR = Path(__file__).resolve().parents[1]

_load_dotenv(BASE_DIR / ".env")

# One CSV per ticker, file stem == ticker
PRICE_CSV_DIR = BASE_DIR / "data" / "price_csv"

# Company metadata
META_DIR = BASE_DIR / "data" / "meta"
COMPANY_INFO_PATH = META_DIR / "company_info.json"

# API settings
ALPHAVANTAGE_API_KEY = os.getenv("ALPHAVANTAGE_API_KEY")
ALPHAVANTAGE_BASE_URL = os.getenv("ALPHAVANTAGE_BASE_URL", "https://www.alphavantage.co")

# Maximum lookback window applied when loading prices
DEFAULT_MAX_DAYS = 30
# Results shown per ranking
DEFAULT_TOP_K = 3

# Ensure required directories exist
PRICE_CSV_DIR.mkdir(parents=True, exist_ok=True)
META_DIR.mkdir(parents=True, exist_ok=True)
