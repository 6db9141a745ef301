# medfin/settings.py
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
project_root = Path(__file__).parent.parent
load_dotenv(project_root / ".env")


class Settings:
    SEED_PATH = os.getenv("MEDFIN_SEED_PATH", str(project_root / "data" / "seed.json"))
    OWNER_REF = os.getenv("MEDFIN_OWNER_REF", "user-123")
    TRIAL_DAYS = int(os.getenv("MEDFIN_TRIAL_DAYS", "7"))
    CURRENCY = os.getenv("MEDFIN_CURRENCY", "BRL")
    LOG_LEVEL = os.getenv("MEDFIN_LOG_LEVEL", "INFO")


settings = Settings()
