# Application configuration, read from the environment (and a local .env file)

import logging
import os

from dotenv import load_dotenv

load_dotenv()

GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-3-pro-preview")
GEMINI_BASE_URL = os.environ.get(
    "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/models"
)
# Analysing a full PDF can take minutes; this is the only timeout applied
GEMINI_TIMEOUT = int(os.environ.get("GEMINI_TIMEOUT", "300"))

MAX_FILES = int(os.environ.get("MAX_FILES", "20"))

# Sessions untouched for this many seconds are dropped; 0 keeps them until deleted
SESSION_IDLE_TTL = int(os.environ.get("SESSION_IDLE_TTL", "3600"))

CORS_ORIGINS = [
    origin.strip() for origin in os.environ.get("CORS_ORIGINS", "*").split(",") if origin.strip()
]

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
