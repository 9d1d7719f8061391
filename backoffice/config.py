import json
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./backoffice.db")
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))
# Statements slower than this are logged as warnings; 0 disables the check
DB_SLOW_QUERY_SECONDS = float(os.getenv("DB_SLOW_QUERY_SECONDS", "1.0"))

# Redis / ARQ (notification hand-off)
REDIS_URL = os.getenv("REDIS_URL")
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD")
REDIS_SSL = os.getenv("REDIS_SSL", "false").lower() == "true"

# Set NOTIFICATIONS_ENABLED=false to drop post-commit notifications (local dev)
NOTIFICATIONS_ENABLED = os.getenv("NOTIFICATIONS_ENABLED", "true").lower() == "true"

# E-signature provider webhook
SIGNATURE_WEBHOOK_SECRET = os.getenv("SIGNATURE_WEBHOOK_SECRET")
# Signers whose e-mail contains this marker are internal staff, not the customer
INTERNAL_SIGNER_DOMAIN_MARKER = os.getenv("INTERNAL_SIGNER_DOMAIN_MARKER", "swiftsoft")

# Tracking updates (chat transport lives behind this API)
TRACKING_API_URL = os.getenv("TRACKING_API_URL")
TRACKING_API_KEY = os.getenv("TRACKING_API_KEY")
TRACKING_TIMEOUT_SECONDS = float(os.getenv("TRACKING_TIMEOUT_SECONDS", "10"))

# Users holding this role receive every contract notification
PROJECT_MANAGER_ROLE = os.getenv("PROJECT_MANAGER_ROLE", "projects.manager")

# Tiered pricing for "software" templates.
# Override with a JSON list: [{"key": "startup", "label": "Startup", "value": 3397, "hours": 20}, ...]
SOFTWARE_TIERS_JSON = os.getenv("SOFTWARE_TIERS_JSON")


def load_software_tiers():
    """Return the configured tier table, or None to use the built-in defaults"""
    if not SOFTWARE_TIERS_JSON:
        return None

    from .domain.contracts.software import SoftwareTier

    try:
        raw = json.loads(SOFTWARE_TIERS_JSON)
        return tuple(
            SoftwareTier(
                key=str(item["key"]),
                label=str(item["label"]),
                value=float(item["value"]),
                hours=int(item["hours"]),
            )
            for item in raw
        )
    except (ValueError, KeyError, TypeError) as e:
        logger.error(f"❌ Invalid SOFTWARE_TIERS_JSON, using default tiers: {e}")
        return None
