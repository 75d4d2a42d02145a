from __future__ import annotations
import os
from pydantic import BaseModel

class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "questrank-api")
    app_display_name: str = os.getenv("APP_DISPLAY_NAME", "QuestRank")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/questrank_dev")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Product decision: a rejected attempt may be followed by a fresh one
    allow_retry_after_rejection: bool = os.getenv("ALLOW_RETRY_AFTER_REJECTION", "1") == "1"

    # Leaderboards
    leaderboard_default_limit: int = int(os.getenv("LEADERBOARD_DEFAULT_LIMIT", "50"))
    leaderboard_max_limit: int = int(os.getenv("LEADERBOARD_MAX_LIMIT", "1000"))

settings = Settings()
