from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    secret_key: str = "dev_secret"
    access_token_expire_minutes: int = 120
    database_url: str = "sqlite:///./proasset.db"
    log_level: str = "INFO"

    # protected administrator seeded at start-up
    admin_username: str = "admin"
    admin_password: str = "admin123"
    admin_name: str = "Administrator"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
