from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # App
    app_name: str = "Trip Service"
    env: str = "development"
    host: str = "0.0.0.0"
    port: int = 5000
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./trips.db"
    auto_create_schema: bool = True

    # Redis (per-trip command locks)
    redis_url: str = "redis://localhost:6379/0"
    trip_lock_ttl_seconds: int = 60

    # New Relic
    new_relic_license_key: str = ""
    new_relic_app_name: str = "Trip-Service"

    # Driver directory
    driver_service_url: str = "http://localhost:5001/v1/drivers"
    driver_service_timeout_seconds: float = 5.0
    # directory: keep the service's order | rating: highest rated first
    driver_ordering: Literal["directory", "rating"] = "directory"

    # Negotiation
    acceptance_timeout_ms: int = 5000
    ping_grace_ms: int = 500

    # Payment service
    payment_service_url: str = "http://localhost:5002/v1/payments"
    payment_timeout_seconds: float = 10.0

    # Lifecycle
    release_driver_on_cancel: bool = False
    legacy_create_status: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
