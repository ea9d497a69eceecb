from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    # Core
    app_name: str = "SwipeHire API"
    environment: str = "development"
    log_level: str = "INFO"

    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"  # Override in production
    mongodb_db_name: str = "swipehire"
    mongodb_max_pool_size: int = 50
    mongodb_min_pool_size: int = 10
    mongodb_max_idle_time_ms: int = 60000
    mongodb_server_selection_timeout_ms: int = 15000
    mongodb_connect_timeout_ms: int = 15000
    mongodb_socket_timeout_ms: int = 60000
    db_operation_timeout_seconds: float = 10.0

    # Cache
    cache_max_entries: int = 10000
    cache_cleanup_interval_seconds: float = 60.0

    # Rate limiting (slowapi limit string)
    rate_limit_default: str = "100/minute"
    rate_limit_enabled: bool = True

    # CORS
    cors_allow_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    cors_allow_methods: List[str] = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
    cors_allow_headers: List[str] = ["*"]

    class Config:
        env_file = ".env"
        case_sensitive = False

settings = Settings()
