from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, read from the environment or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./data/kakeibo.db"
    log_level: str = "INFO"
    debug: bool = False
    allowed_origins: str = "http://localhost:3000,http://localhost:5173"

    # Common denominator for aggregated totals
    base_currency: str = "JPY"

    # Header set by the upstream auth gateway once the session is verified
    auth_user_header: str = "X-User-Id"
    auth_email_header: str = "X-User-Email"

    # Cache lifetime for live holding prices
    price_cache_minutes: int = 15

    @property
    def allowed_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


settings = Settings()
