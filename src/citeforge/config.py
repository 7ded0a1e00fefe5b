# /citeforge/config.py
"""
Centralized configuration for the citation viewer.
Includes extraction retry policy, matcher tuning, highlight timing and paths.
"""
import os
from pathlib import Path
from dotenv import load_dotenv
from rich.console import Console
from .observability import configure_logging

# ==============================================================================
# CONSOLE & ENVIRONMENT
# ==============================================================================
console = Console()
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return bool(default)
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None:
        return int(default)
    try:
        value = int(raw)
    except ValueError:
        return int(default)
    return max(minimum, value)


def _env_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.getenv(name)
    if raw is None:
        return float(default)
    try:
        value = float(raw)
    except ValueError:
        return float(default)
    return max(float(minimum), value)


# ==============================================================================
# GLOBAL CONFIGURATION
# ==============================================================================
# --- Fragment Extraction ---
EXTRACTION_MAX_RETRIES = _env_int("EXTRACTION_MAX_RETRIES", 1, minimum=0)
EXTRACTION_RETRY_DELAY_S = _env_float("EXTRACTION_RETRY_DELAY_S", 0.10, minimum=0.0)
RENDER_WAIT_TIMEOUT_S = _env_float("RENDER_WAIT_TIMEOUT_S", 5.0, minimum=0.0)

# --- Quote Matching ---
ANCHOR_HALF_WIDTH = _env_int("ANCHOR_HALF_WIDTH", 7, minimum=1)
WORD_MIN_LENGTH = _env_int("WORD_MIN_LENGTH", 4, minimum=1)

# --- Highlight & Navigation Timing ---
HIGHLIGHT_CONTEXT_NEIGHBORS = _env_int("HIGHLIGHT_CONTEXT_NEIGHBORS", 1, minimum=0)
SCROLL_SETTLE_DELAY_S = _env_float("SCROLL_SETTLE_DELAY_S", 0.10, minimum=0.0)
FOCUS_RING_DURATION_S = _env_float("FOCUS_RING_DURATION_S", 3.0, minimum=0.0)

# --- API Server ---
API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = _env_int("API_PORT", 8000, minimum=1)
# Set to false to keep jump metrics in memory only (no JSONL file).
METRICS_LOG_ENABLED = _env_bool("METRICS_LOG_ENABLED", True)

# --- Path Configuration ---
# Data directory is at ../../data relative to this file (src/citeforge/config.py)
_BASE_DIR = Path(__file__).resolve().parent.parent.parent
_DATA_DIR = _BASE_DIR / "data"

CACHE_DIR = Path(os.getenv("CACHE_DIR", str(_DATA_DIR / "runtime_cache")))
METRICS_DIR = Path(os.getenv("METRICS_DIR", str(CACHE_DIR / "metrics")))

# --- Create necessary directories ---
CACHE_DIR.mkdir(parents=True, exist_ok=True)
LOG_PATH = Path(os.getenv("LOG_PATH", str(CACHE_DIR / "app.log")))
LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
configure_logging(LOG_PATH)
