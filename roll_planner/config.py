import os
import logging
from typing import List
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"⚠️ Invalid value for {name}: {raw!r}, using default {default}")
        return default


def _get_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name, "")
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


# ============================================================================
# ROLL GEOMETRY
# ============================================================================

# Full deckle of a set before the wastage allowance is taken off
BASE_ROLL_WIDTH = _get_float("BASE_ROLL_WIDTH", 124.0)
# Planning width never drops below this
FLOOR_PLANNING_WIDTH = _get_float("FLOOR_PLANNING_WIDTH", 50.0)

DEFAULT_WASTAGE_ALLOWANCE = _get_float("DEFAULT_WASTAGE_ALLOWANCE", 1.0)
MIN_WASTAGE_ALLOWANCE = _get_float("MIN_WASTAGE_ALLOWANCE", 1.0)
MAX_WASTAGE_ALLOWANCE = _get_float("MAX_WASTAGE_ALLOWANCE", 69.0)

# Sets auto-created with every new jumbo roll
SETS_PER_JUMBO = 3

# ============================================================================
# PRINT LAYOUT
# ============================================================================

MAX_ALLOWED_WIDTH = _get_float("MAX_ALLOWED_WIDTH", 123.0)

# ============================================================================
# WASTAGE REPORTING
# ============================================================================

MIN_REPORTABLE_WASTAGE = _get_float("MIN_REPORTABLE_WASTAGE", 9.0)
MAX_REPORTABLE_WASTAGE = _get_float("MAX_REPORTABLE_WASTAGE", 21.0)

# ============================================================================
# LEGACY IDENTIFIERS
# ============================================================================

LEGACY_JUMBO_PREFIXES = _get_list("LEGACY_JUMBO_PREFIXES", ["VJB_", "VJB"])
LEGACY_JUMBO_MARKERS = _get_list("LEGACY_JUMBO_MARKERS", ["VIRTUAL_JUMBO"])
WASTAGE_BARCODE_PREFIXES = _get_list("WASTAGE_BARCODE_PREFIXES", ["WCR_", "SCR_"])

# ============================================================================
# EXTERNAL SERVICES
# ============================================================================

PLAN_SERVICE_URL = os.getenv("PLAN_SERVICE_URL", "http://localhost:8000/api")
PLAN_CREATE_PATH = os.getenv("PLAN_CREATE_PATH", "/plans/manual/start-production")
MASTER_SERVICE_URL = os.getenv("MASTER_SERVICE_URL", PLAN_SERVICE_URL)
EXTERNAL_TIMEOUT_SECONDS = _get_float("EXTERNAL_TIMEOUT_SECONDS", 30.0)

CORS_ORIGINS = _get_list("CORS_ORIGINS", ["http://localhost:3000", "http://localhost:3001"])
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(_get_float("PORT", 8001))
