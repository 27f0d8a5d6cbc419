"""API configuration constants.

Single source of truth for paths and settings used across the API layer.
Values come from the environment (a `.env` file is honored).
"""

import logging
import os
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

load_dotenv(find_dotenv())


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Base directories
API_DIR = Path(__file__).parent
PACKAGE_DIR = API_DIR.parent
PROJECT_DIR = PACKAGE_DIR.parent
DATA_DIR = Path(os.getenv("STORYBOOK_DATA_DIR", PROJECT_DIR / "data"))

# Environment
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
IS_PRODUCTION = ENVIRONMENT == "production"

# Story limits are not enforced or counted in test mode
TEST_MODE = _flag("TEST_MODE")

# Database
DATABASE_URL = os.getenv("DATABASE_URL")

# Auth
JWT_SECRET = os.getenv("JWT_SECRET")
SESSION_COOKIE_NAME = "session"
SESSION_MAX_AGE_SECONDS = 30 * 24 * 60 * 60

# Razorpay
RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID", "")
RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET", "")
RAZORPAY_WEBHOOK_SECRET = os.getenv("RAZORPAY_WEBHOOK_SECRET", "")

# Vendor keys (read again by the client factories in storybook.config)
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY") or os.getenv("GOOGLE_AI_API_KEY")
REPLICATE_API_TOKEN = os.getenv("REPLICATE_API_TOKEN")

# Logging
LOG_JSON = _flag("LOG_JSON", "true")
LOG_LEVEL = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)

# CORS
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Image downloads for PDF export
IMAGE_FETCH_TIMEOUT = 30.0


def razorpay_configured() -> bool:
    """Both keys present and not left as template placeholders."""
    if not RAZORPAY_KEY_ID or not RAZORPAY_KEY_SECRET:
        return False
    return "placeholder" not in RAZORPAY_KEY_ID and "placeholder" not in RAZORPAY_KEY_SECRET
