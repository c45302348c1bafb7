from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # `.env.prod` takes priority over `.env`
        env_file=(".env", ".env.prod"),
        extra="ignore",
    )

    # Token signing
    jwt_secret_key: str = "your-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_days: int = 7

    # bcrypt work factor for password hashes
    bcrypt_rounds: int = 10

    cors_origins: List[str] = ["*"]

    # slowapi limit string applied to every route, per client IP
    rate_limit: str = "100/15 minutes"
    rate_limit_enabled: bool = True

    # Sample companies, users and jobs loaded into a fresh store
    seed_demo_data: bool = True
    demo_seed: int = 42

    # CloudWatch embedded metrics ("local" prints to stdout)
    metrics_environment: str = "local"
    metrics_namespace: str = "JobBoard"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
