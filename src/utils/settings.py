"""
Runtime Settings

Environment-driven configuration. `.env` is loaded once at import;
every value can be overridden through the process environment.
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()

# Content generator
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "dummy")
LLM_MODEL = os.getenv("LLM_MODEL", "openrouter/free")
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "20"))
LLM_MAX_RETRIES = int(os.getenv("LLM_MAX_RETRIES", "1"))
LLM_RETRY_BACKOFF = float(os.getenv("LLM_RETRY_BACKOFF", "1.5"))

# Persistence
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///rituals.db")
RITUAL_LOCK_TTL_SECONDS = int(os.getenv("RITUAL_LOCK_TTL_SECONDS", "600"))

# Clarify chips cache
CLARIFY_CACHE_TTL_DAYS = int(os.getenv("CLARIFY_CACHE_TTL_DAYS", "30"))
CLARIFY_CACHE_MAXSIZE = int(os.getenv("CLARIFY_CACHE_MAXSIZE", "5000"))

# Safety & domains
SAFETY_LEXICON_PATH = os.getenv("SAFETY_LEXICON_PATH", "")
SAFETY_MODERATION_ENABLED = os.getenv("SAFETY_MODERATION_ENABLED", "false").lower() in ("1", "true", "yes")
DOMAIN_OVERRIDES_PATH = os.getenv("DOMAIN_OVERRIDES_PATH", "data/domains/overrides.json")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def llm_config() -> dict:
    """Provider config consumed by get_llm_provider()."""
    return {
        "provider": LLM_PROVIDER,
        "model": LLM_MODEL,
        "timeout_seconds": LLM_TIMEOUT_SECONDS,
    }


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for scripts and services."""
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
