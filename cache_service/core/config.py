"""Configuration settings for the tenant cache service."""

from pydantic_settings import BaseSettings
from typing import Optional, List
import os


class Settings(BaseSettings):
    """Application settings."""

    # API Configuration
    app_name: str = "Tenant Cache Service"
    app_version: str = "1.0.0"
    api_prefix: str = "/api/v1"
    debug: bool = False

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1  # Local fallback maps are per-process

    # Remote cache (Redis)
    redis_url: Optional[str] = None
    redis_connect_timeout: float = 10.0  # seconds
    redis_socket_timeout: float = 5.0  # seconds

    # Explicit "this process is a live server" flag.
    # None falls back to the environment heuristic in core.runtime.
    server_mode: Optional[bool] = None
    build_phase_env_var: str = "BUILD_PHASE"
    build_phase_markers: List[str] = ["build", "compile", "export"]
    build_tool_argv_markers: List[str] = ["build", "setup.py", "pyinstaller", "sphinx", "compileall"]
    runtime_env_markers: List[str] = [
        "PORT",
        "HOSTNAME",
        "KUBERNETES_SERVICE_HOST",
        "DYNO",
        "FLY_APP_NAME",
        "K_SERVICE",
        "VERCEL",
        "NETLIFY",
    ]

    # Local fallback store
    local_store_max_entries: int = 10000
    local_store_cleanup_interval: int = 60  # seconds, 0 disables the cleanup task
    local_store_max_idle: int = 3600  # seconds, for entries stored without TTL

    # Namespaces
    response_cache_namespace: str = "cache"
    rate_limit_key_prefix: str = "ratelimit"

    # Defaults handed to tenants without stored configuration
    default_cache_ttl: int = 3600
    default_cache_max_size: int = 1000
    default_rate_limit_per_minute: int = 60
    default_rate_limit_per_hour: int = 1000
    default_rate_limit_per_day: int = 10000
    default_block_duration: int = 300

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    class Config:
        env_file = ".env"
        env_prefix = "CACHE_"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields in .env file


# Create settings instance
settings = Settings()

# Override with environment variables
if os.getenv("REDIS_URL"):
    settings.redis_url = os.getenv("REDIS_URL").strip()
