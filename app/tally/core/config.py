from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    APP_NAME: str = "TALLY"
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite+pysqlite:///./tally.db"
    DEFAULT_TENANT_NAME: str = "Default Tenant"
    DEFAULT_LOCATION_NAME: str = "Main Storage"
    DEFAULT_LOCATION_CODE: str = "MAIN"
    ADMIN_USERNAME: str = "admin"
    ADMIN_EMAIL: str = "admin@example.com"
    ADMIN_PASSWORD: str = "change-me"
    LOG_LEVEL: str = "INFO"
    METRICS_ENABLED: bool = True
    STOCK_COUNT_DEFAULT_PAGE_SIZE: int = 50
    STOCK_COUNT_MAX_PAGE_SIZE: int = 200
    LOW_STOCK_DEDUPE_HOURS: int = 24

settings = Settings()
