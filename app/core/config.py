from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    BUSINESS_TIMEZONE: str = "UTC"

    STORE_PROVIDER: str = "memory"  # "memory" | "json"
    DATA_DIR: str = "./data"

    COMPLETION_WINDOW_HOURS: int = 24
    PROVIDER_RESPONSE_TIMEOUT_MINUTES: int = 5

    CATALOG_SEED_PATH: str | None = None

    NOTIFY_WEBHOOK_URL: str | None = None
    NOTIFY_WEBHOOK_SECRET: str | None = None
    NOTIFY_TIMEOUT_SECONDS: float = 5.0


settings = Settings()
