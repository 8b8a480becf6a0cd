from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Mistral API
    mistral_api_key: str = ""
    mistral_api_url: str = "https://api.mistral.ai/v1/chat/completions"
    mistral_model: str = "mistral-large-latest"
    completion_temperature: float = 0.7
    completion_max_tokens: int = 1000
    completion_timeout_seconds: float = 60.0

    # Admission queue
    min_request_interval: float = 1.0  # seconds between upstream attempts
    max_retries: int = 3  # rate-limit retries per job
    base_retry_delay: float = 1.0  # seconds, doubled per retry

    # App
    app_env: str = "development"
    app_debug: bool = True
    app_host: str = "0.0.0.0"
    app_port: int = Field(default=5000, validation_alias=AliasChoices("PORT", "APP_PORT"))

    # CORS
    allowed_origins: str = (
        "http://localhost:5173,http://localhost:3000,https://ai-rb-haee.onrender.com"
    )  # comma-separated

    # Logging
    log_level: str = "INFO"
    log_json: bool = False  # set True in production for structured JSON logs

    # Sentry
    sentry_dsn: str = ""  # leave empty to disable

    @property
    def origins(self) -> list[str]:
        return [o.strip().rstrip("/") for o in self.allowed_origins.split(",") if o.strip()]


settings = Settings()


def validate_settings_for_production() -> None:
    """Validate critical settings. Called on startup in non-test environments."""
    errors: list[str] = []

    if settings.min_request_interval < 0:
        errors.append("MIN_REQUEST_INTERVAL must not be negative")

    if settings.max_retries < 0:
        errors.append("MAX_RETRIES must not be negative")

    if settings.app_env == "production":
        if not settings.mistral_api_key:
            errors.append("MISTRAL_API_KEY must be set in production")
        if "*" in settings.origins:
            errors.append("ALLOWED_ORIGINS must not be '*' in production")
        if settings.app_debug:
            errors.append("APP_DEBUG must be false in production")

    if errors:
        raise SystemExit("Configuration errors:\n  - " + "\n  - ".join(errors))
