# backend/farmreport/config.py
from functools import lru_cache
from typing import List
import secrets

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # environment: "dev" for running the service locally, "test" for pytest
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # --- Upstream farm backend (source of raw records) ---
    UPSTREAM_BASE_URL: str = "http://localhost:8080"
    # Per-request bound for the fan-out fetches; 0 or None waits indefinitely.
    UPSTREAM_TIMEOUT_SECONDS: float | None = 10.0

    # --- Auth / JWT (tokens are issued by the upstream backend) ---
    JWT_SECRET: str | None = Field(None, description="JWT verification secret. Must be set outside dev/test.")
    JWT_ALG: str = "HS256"
    JWT_ACCESS_MIN: int = 30

    # --- Reporting defaults ---
    BUILDINGS_DEFAULT: List[str] = Field(default_factory=lambda: ["B1", "B2", "B3", "B4"])

    # --- Security controls ---
    FORCE_HTTPS: bool = False
    TRUSTED_HOSTS: List[str] = Field(
        default_factory=lambda: [
            "localhost",
            "127.0.0.1",
            "testserver",
            "test",
        ]
    )
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    )
    HSTS_MAX_AGE: int = 31536000  # 1 year
    CONTENT_SECURITY_POLICY: str = (
        "default-src 'self'; "
        "img-src 'self' data:; "
        "connect-src 'self'; "
        "frame-ancestors 'none'"
    )

    @model_validator(mode="after")
    def _check_jwt_secret(self):
        # In dev/test, auto-generate an ephemeral secret if none provided to avoid committing secrets.
        if self.ENV in ("dev", "test"):
            if not self.JWT_SECRET:
                self.JWT_SECRET = secrets.token_urlsafe(32)
            return self
        if not self.JWT_SECRET:
            raise ValueError("JWT_SECRET must be set via environment for non-dev/test environments.")
        return self

    @property
    def upstream_timeout(self) -> float | None:
        if not self.UPSTREAM_TIMEOUT_SECONDS:
            return None
        return float(self.UPSTREAM_TIMEOUT_SECONDS)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
