# day_planner/config.py
import os

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

DEFAULT_DAY_START: str = os.getenv("DAY_PLANNER_DAY_START", "09:00")
DEFAULT_DURATION_MINUTES: int = int(os.getenv("DAY_PLANNER_DEFAULT_DURATION", "90"))
MAX_DAY_HOURS: float = float(os.getenv("DAY_PLANNER_MAX_DAY_HOURS", "14"))

LOG_LEVEL: str = os.getenv("DAY_PLANNER_LOG_LEVEL", "INFO").upper()
ALLOWED_ORIGINS: str = os.getenv("DAY_PLANNER_ALLOWED_ORIGINS") or "*"

GOOGLE_MAPS_API_KEY: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
GEOCODE_TIMEOUT: float = float(os.getenv("DAY_PLANNER_GEOCODE_TIMEOUT", "10"))
