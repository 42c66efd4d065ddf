from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List
import os
from pathlib import Path


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./crowdfund.db"

    # App
    app_name: str = "Crowdfund API"
    debug: bool = False
    log_level: str = "INFO"
    service_name: str = "crowdfund-service"
    api_prefix: str = "/api"
    cors_origins: List[str] = ["*"]

    # Authentication
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiration_days: int = 30
    bcrypt_rounds: int = 10

    # Tracing
    tracing_enabled: bool = False
    otlp_endpoint: str = "http://localhost:4318/v1/traces"

    model_config = SettingsConfigDict(
        # Look for .env.local file in the project root
        env_file=os.path.join(Path(__file__).parent.parent.parent, ".env.local"),
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
