import os
import logging

from utils.env import get_env_str, get_env_bool, get_env_int

logger = logging.getLogger(__name__)

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

# -----------------------------------------------------------------------------
# Dotenv loading (LOCAL ONLY)
# -----------------------------------------------------------------------------
# Rules:
# - Deployments are configured via real environment variables.
# - Tests must be deterministic and must NOT implicitly ingest a developer's repo-root .env.
# - Local dev may use .env for convenience.
_FLASK_ENV_EARLY = (os.getenv("FLASK_ENV") or "").strip().lower()
_APP_STAGE_EARLY = (os.getenv("APP_STAGE") or "").strip().lower()

if _FLASK_ENV_EARLY not in {"test", "testing"} and _APP_STAGE_EARLY not in {"test", "testing"}:
    try:
        from dotenv import load_dotenv
        load_dotenv(dotenv_path=os.path.join(BASE_DIR, ".env"), override=False)
    except ImportError:
        logger.debug("python-dotenv not installed; skipping .env loading")

# -----------------------------------------------------------------------------
# Environment / Stage
# -----------------------------------------------------------------------------
def _normalize_stage(raw: str) -> str:
    raw = (raw or "").strip().lower()
    if raw in {"prod", "production"}:
        return "production"
    if raw in {"stage", "staging"}:
        return "staging"
    if raw in {"test", "testing"}:
        return "test"
    return "dev"


FLASK_ENV = (os.getenv("FLASK_ENV", "development") or "development").strip().lower()
APP_STAGE = _normalize_stage(os.getenv("APP_STAGE", "dev"))

IS_TEST = APP_STAGE == "test" or FLASK_ENV in {"test", "testing"}
IS_STAGING = APP_STAGE == "staging"
IS_PRODUCTION = APP_STAGE == "production"

DEBUG = FLASK_ENV != "production" and not IS_PRODUCTION
TESTING = IS_TEST

# -----------------------------------------------------------------------------
# Secrets
# -----------------------------------------------------------------------------
SECRET_KEY = get_env_str("SECRET_KEY", required=IS_PRODUCTION or IS_STAGING)
if not SECRET_KEY:
    SECRET_KEY = os.urandom(32).hex()
    if not IS_TEST:
        logger.warning("[Config] SECRET_KEY not set. Using an ephemeral key for this process.")

# -----------------------------------------------------------------------------
# Server
# -----------------------------------------------------------------------------
PORT = get_env_int("PORT", 3000)
MAX_CONTENT_LENGTH = get_env_int("MAX_CONTENT_LENGTH", 1024 * 1024)

# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
LOG_LEVEL = (get_env_str("LOG_LEVEL", default="INFO") or "INFO").upper()
LOG_JSON = get_env_bool("LOG_JSON", default=True)

# -----------------------------------------------------------------------------
# Rate Limiting
# -----------------------------------------------------------------------------
GENERATE_RATE_LIMIT = get_env_str("GENERATE_RATE_LIMIT", default="60/minute")
RATELIMIT_STORAGE_URI = get_env_str("RATELIMIT_STORAGE_URI", default="memory://")
RATELIMIT_ENABLED = get_env_bool("RATELIMIT_ENABLED", default=not IS_TEST)

# -----------------------------------------------------------------------------
# QR Rendering Limits
# -----------------------------------------------------------------------------
QR_MAX_SIZE = get_env_int("QR_MAX_SIZE", 2048)

if QR_MAX_SIZE <= 0:
    raise ValueError(f"CRITICAL: QR_MAX_SIZE must be positive. Got: {QR_MAX_SIZE}")

# Largest titled canvas edge (QR plus padding plus title)
COMPOSED_MAX_SIZE = get_env_int("COMPOSED_MAX_SIZE", QR_MAX_SIZE * 2)

if COMPOSED_MAX_SIZE < QR_MAX_SIZE:
    raise ValueError(
        f"CRITICAL: COMPOSED_MAX_SIZE ({COMPOSED_MAX_SIZE}) must not be below QR_MAX_SIZE ({QR_MAX_SIZE})"
    )

# Extra directories searched for title fonts (os.pathsep separated)
TITLE_FONT_DIRS = [
    p for p in (get_env_str("TITLE_FONT_DIRS", default="") or "").split(os.pathsep) if p
]
