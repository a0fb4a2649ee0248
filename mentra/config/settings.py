"""Central Configuration for Mentra."""
import os
from pathlib import Path
from dotenv import load_dotenv

# Base Directory (Root of the project)
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Load Environment Variables
load_dotenv(BASE_DIR / ".env")

# Logging
LOG_LEVEL = os.getenv("MENTRA_LOG_LEVEL", "INFO").upper()

# LLM Settings
CHAT_MODEL_NAME = os.getenv("MENTRA_CHAT_MODEL", "gemini-3-flash-preview")
ANALYSIS_MODEL_NAME = os.getenv("MENTRA_ANALYSIS_MODEL", "gemini-3-pro-preview")
CHAT_TEMPERATURE = 0.8
FALLBACK_REPLY = "I'm here."

# Credential pool sources, checked in this order
CREDENTIAL_LIST_VAR = "GEMINI_API_KEYS"
CREDENTIAL_NUMBERED_PREFIX = "GEMINI_API_KEY_"
CREDENTIAL_SINGLE_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY")

# Retry Policy
MAX_ATTEMPTS = 5
ROTATION_PAUSE_SECONDS = 0.25
BACKOFF_BASE_SECONDS = 1.0
MAX_JITTER_SECONDS = 0.25

# Session Flow
ANALYSIS_THRESHOLD = 6  # messages already exchanged before a send triggers analysis
TRIAGE_REVEAL_DELAY_SECONDS = 1.8
BOOKING_DELAY_SECONDS = 4.5
PAYMENT_DELAY_SECONDS = 1.5

# Mocked booking offer
BOOKING_SLOT = "Tomorrow at 7:00 PM"
BOOKING_PRICE = "$25.00"

ANALYSIS_THEMES = ("Regret", "Anxiety", "Grief", "Self-image", "Loneliness", "Burnout")
MOODS = ("Peace", "Calm", "Grounded", "Flow", "Rest")


def load_credentials(environ=None) -> list:
    """
    Collect the API credential pool from the environment.

    Sources are merged in order (list var, numbered vars, single vars) and
    de-duplicated while keeping the first position of each key.
    """
    environ = os.environ if environ is None else environ
    keys = []

    listed = environ.get(CREDENTIAL_LIST_VAR, "")
    keys.extend(k.strip() for k in listed.split(","))

    numbered = []
    for name, value in environ.items():
        suffix = name[len(CREDENTIAL_NUMBERED_PREFIX):]
        if name.startswith(CREDENTIAL_NUMBERED_PREFIX) and suffix.isdigit():
            numbered.append((int(suffix), value.strip()))
    keys.extend(value for _, value in sorted(numbered))

    keys.extend(environ.get(var, "").strip() for var in CREDENTIAL_SINGLE_VARS)

    pool = []
    for key in keys:
        if key and key not in pool:
            pool.append(key)
    return pool
