"""
wabot Configuration - Environment-driven settings
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    return int(value)


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    return float(value)


# ============================================
# PATHS
# ============================================
BASE_DIR = Path(__file__).parent
LOGS_DIR = BASE_DIR / "logs"
STATUS_LOG_FILE = Path(os.getenv("STATUS_LOG_FILE", str(LOGS_DIR / "status.log")))

# Opaque auth-state directory owned by the bridge
SESSION_DIR = os.getenv("SESSION_DIR", "session")

# ============================================
# HTTP SERVER
# ============================================
HOST = os.getenv("HOST", "0.0.0.0")
PORT = _env_int("PORT", 3000)  # Fallback only for local testing
JSON_BODY_LIMIT = _env_int("JSON_BODY_LIMIT", 50 * 1024 * 1024)
TEXT_BODY_LIMIT = _env_int("TEXT_BODY_LIMIT", 100 * 1024)
PUBLIC_URL = os.getenv("PUBLIC_URL", f"http://localhost:{PORT}")

# ============================================
# WHATSAPP BRIDGE
# ============================================
BRIDGE_URL = os.getenv("BRIDGE_URL", "http://localhost:8080")
BRIDGE_API_KEY = os.getenv("BRIDGE_API_KEY")
BRIDGE_WEBHOOK_SECRET = os.getenv("BRIDGE_WEBHOOK_SECRET")
BRIDGE_TIMEOUT = _env_float("BRIDGE_TIMEOUT", 30.0)  # seconds
SESSION_NAME = os.getenv("SESSION_NAME", "default")

# ============================================
# CONNECTION RETRY
# ============================================
MAX_RETRIES = _env_int("MAX_RETRIES", 3)
RETRY_DELAY = _env_float("RETRY_DELAY", 5.0)  # seconds
INIT_TIMEOUT = _env_float("INIT_TIMEOUT", 60.0)  # seconds
EXIT_ON_RETRY_EXHAUSTED = _env_bool("EXIT_ON_RETRY_EXHAUSTED", False)

# ============================================
# COMMANDS
# ============================================
SCHEDULE_COMMAND = os.getenv("SCHEDULE_COMMAND", "python3 getSchedule.py")
SCHEDULE_TIMEOUT = _env_float("SCHEDULE_TIMEOUT", 60.0)  # seconds
LOG_TAIL_LINES = 10

# ============================================
# LOGGING
# ============================================
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
TIMEZONE = os.getenv("TIMEZONE", "UTC")
