"""Application configuration via environment variables."""

import json
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Portal settings loaded from environment variables."""

    # Backend
    API_BASE_URL: str = "http://localhost:3000/api"
    REQUEST_TIMEOUT_SECONDS: float = 10.0

    # Leave policy
    DEFAULT_ANNUAL_ALLOWANCE: int = 22

    # App
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "info"

    # Dev server only; the client never verifies tokens
    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALGORITHM: str = "HS256"
    CORS_ORIGINS: str = '["http://localhost:5173"]'

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS_ORIGINS JSON string into a list."""
        try:
            return json.loads(self.CORS_ORIGINS)
        except (json.JSONDecodeError, TypeError):
            return ["http://localhost:5173"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


settings = Settings()
