from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Progress store
    PROGRESS_STORAGE_PATH: str = "/data/progress.json"
    PROGRESS_STORAGE_KEY: str = "streamtv_playback_progress"
    PROGRESS_MAX_ITEMS: int = 50

    # Continue watching
    CONTINUE_WATCHING_MIN_PROGRESS: float = 5.0
    CONTINUE_WATCHING_MAX_PROGRESS: float = 95.0
    CONTINUE_WATCHING_LIMIT: int = 10

    # Catalog (Baserow)
    CATALOG_BASE_URL: str = "https://api.baserow.io/api"
    CATALOG_TOKEN: Optional[str] = None
    CATALOG_CONTENTS_TABLE_ID: int = 5272
    CATALOG_EPISODES_TABLE_ID: int = 5273

    # System
    LOG_LEVEL: str = "INFO"
    HTTP_SERVER_HOST: str = "0.0.0.0"
    HTTP_SERVER_PORT: int = 8080
    HTTP_SERVER_TOKEN: Optional[str] = None
    REQUEST_TIMEOUT_SECONDS: int = 30

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

settings = Settings()
