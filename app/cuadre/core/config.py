from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    APP_NAME: str = "CUADRE-CAJA"
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite+pysqlite:///./cuadre.db"
    DEFAULT_ADMIN_USERNAME: str = "admin"
    DEFAULT_BRANCH_NAME: str = "Principal"
    REPORTS_MAX_RANGE_MONTHS: int = 3
    SESSIONS_LIST_MAX_PAGE_SIZE: int = 50
    AUDIT_LIST_MAX_PAGE_SIZE: int = 100
    VARIANCE_REPORT_MAX_LIMIT: int = 100
    OPS_ENABLE_INTEGRITY_SCAN: bool = True
    METRICS_ENABLED: bool = True
    LOG_LEVEL: str = "INFO"

settings = Settings()
