"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or .env file."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = "Trip Planner"
    debug: bool = False
    log_level: str = "INFO"
    log_dir: str = ""  # Empty logs to stderr; otherwise <log_dir>/latest.log

    # Server
    host: str = "0.0.0.0"
    port: int = 3333
    allowed_origins: str = "*"  # Comma-separated origins, or "*" for all

    # Database
    database_url: str = "sqlite:///./trip_planner.db"

    # Identity provider (Supabase-style JWKS)
    supabase_url: str = ""
    jwt_issuer: str = ""  # Defaults to <supabase_url>/auth/v1
    jwt_audience: str = ""
    jwt_clock_tolerance_seconds: int = 30
    jwks_cache_lifespan_seconds: int = 300

    @property
    def jwt_enabled(self) -> bool:
        """JWT verification is only possible when a key source is configured."""
        return bool(self.supabase_url)

    @property
    def jwks_url(self) -> str:
        return f"{self.supabase_url.rstrip('/')}/auth/v1/.well-known/jwks.json"

    @property
    def resolved_jwt_issuer(self) -> str | None:
        if self.jwt_issuer:
            return self.jwt_issuer
        if self.supabase_url:
            return f"{self.supabase_url.rstrip('/')}/auth/v1"
        return None


settings = Settings()
