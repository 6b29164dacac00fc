# personaflow/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./personaflow.db"

    DATABASE_ECHO_SQL: bool = False
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10
    DATABASE_POOL_TIMEOUT: int = 30

    # Startup connection retries
    DATABASE_CONNECT_RETRIES: int = 10
    DATABASE_RETRY_DELAY: float = 5.0

    # Used when a persona is created without an explicit color
    DEFAULT_PERSONA_COLOR: str = "#3b82f6"

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
