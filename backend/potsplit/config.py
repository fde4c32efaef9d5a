"""
backend/potsplit/config.py

Purpose:
    Central settings loading for the settlement backend.

Dependencies:
    - pydantic-settings
    - pathlib
"""

from pathlib import Path

from pydantic_settings import BaseSettings

# Prefer backend/.env, fallback to project-root .env.
_BACKEND_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
_ROOT_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "potsplit"
    BACKEND_CORS_ORIGINS: str = "http://localhost:8081"
    LOG_LEVEL: str = "INFO"

    # Settlement engine
    SETTLEMENT_EPSILON: float = 0.01  # sub-cent dust ignored by the debt sweep
    MALFORMED_PICK_POLICY: str = "treat_as_loser"  # treat_as_loser | skip_wager
    SETTLEMENT_MAX_WORKERS: int = 1  # >1 classifies wagers on a thread pool
    DEFAULT_DISPLAY_NAME: str = "Player"

    # Pool odds shown on wager cards
    POOL_FEE: float = 0.05
    POOL_ODDS_CAP: float = 99.99

    # Store reads
    WAGER_FETCH_LIMIT: int = 5000
    PICK_FETCH_LIMIT: int = 50000

    model_config = {
        "env_file": (str(_BACKEND_ENV_FILE), str(_ROOT_ENV_FILE)),
        "extra": "ignore",
    }


settings = Settings()
