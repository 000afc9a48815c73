"""Environment helpers shared by the database layer and startup scripts."""

import logging
import os

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def require_env(name: str) -> str:
    """Return the value of a mandatory environment variable or raise RuntimeError.
    WHY: Fail-fast during startup when DATABASE_URL or similar is missing.
    """
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def load_env_file() -> bool:
    """Load variables from a local .env file without overwriting existing ones.

    WHAT:
        Loads backend/.env (or the nearest .env) into os.environ.
    WHY:
        Developers keep DATABASE_URL and SENTRY_DSN in a local file; deployed
        environments export real variables which must win.

    Returns:
        True if a .env file was found and loaded.
    """
    loaded = load_dotenv(override=False)

    if loaded:
        logger.info("Loaded local .env file (existing variables were NOT overwritten)")
    else:
        logger.debug("No local .env file found or loaded")
    return loaded
