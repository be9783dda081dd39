from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    APP_NAME: str = "LapTrack"
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite+pysqlite:///./laptrack.db"
    UPLOADS_STORAGE_PATH: str = "./uploads"
    UPLOADS_STAGING_PATH: str = "./uploads/.staging"
    UPLOADS_URL_PREFIX: str = "/uploads"
    UPLOAD_MAX_BYTES: int = 10 * 1024 * 1024
    NOTIFICATIONS_ENABLED: bool = True
    NOTIFICATIONS_FROM_ADDRESS: str = "logistics@example.com"
    NOTIFICATIONS_WAREHOUSE_ADDRESS: str = "warehouse@example.com"
    METRICS_ENABLED: bool = True
    LOG_LEVEL: str = "INFO"
    BOOTSTRAP_LOGISTICS_USERNAME: str = "logistics"
    BOOTSTRAP_LOGISTICS_EMAIL: str = "logistics@example.com"
    BOOTSTRAP_LOGISTICS_PASSWORD: str = "change-me"

settings = Settings()
