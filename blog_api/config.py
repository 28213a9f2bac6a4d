"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Service ────────────────────────────────────────────────────────────
    service_name: str = "community-blog"
    environment: str = "development"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    # ── Sessions ───────────────────────────────────────────────────────────
    session_backend: str = "memory"      # 'memory' | 'redis'
    session_ttl: int = 86400             # 24h session lifetime
    session_prune_interval: int = 86400  # prune expired sessions once a day
    session_cookie_name: str = "blog.sid"

    # ── Redis (session backend) ────────────────────────────────────────────
    redis_host: str = "redis"
    redis_port: int = 6379
    redis_session_prefix: str = "sess:"

    # ── Input limits ───────────────────────────────────────────────────────
    username_min_length: int = 3
    password_min_length: int = 6
    post_title_min_length: int = 5
    post_content_min_length: int = 20

    # ── Observability ──────────────────────────────────────────────────────
    # Leave empty to keep spans in-process (no exporter).
    otel_exporter_otlp_endpoint: str = ""

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
