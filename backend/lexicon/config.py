from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Clinton Lexicon"
    environment: str = "dev"

    database_url: str = "sqlite:///./lexicon.db"
    log_level: str = "INFO"

    # Admin auth
    jwt_secret: str = "fallback-secret-for-development"
    jwt_expiration_hours: int = 24
    admin_username: str | None = None
    admin_password_hash: str | None = None  # bcrypt, see `lexicon hash-password`

    # Definition updater
    definition_api_provider: str = "free-dictionary"
    def_max_requests: int = 100
    def_rate_limit_ms: int = 1000
    def_retry_not_found_days: int = 90
    def_retry_error_days: int = 7
    def_request_timeout_sec: float = 10.0
    definition_schedule_enabled: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
