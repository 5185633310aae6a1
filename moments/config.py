from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Store identifiers are fixed at deploy time.
    """

    # env_file is only used as fallback, env vars take precedence
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    # Tabular store - required from .env
    SPREADSHEET_ID: str
    SHEET_NAME: str = "master"

    # Blob store - required from .env
    DRIVE_FOLDER_ID: str

    # Logging Configuration
    LOG_LEVEL: str = "INFO"

    # Store backends
    TABULAR_BACKEND: Literal["google", "sql", "memory"] = "google"
    BLOB_BACKEND: Literal["google", "memory"] = "google"

    # Only read by the sql tabular backend
    DATABASE_URL: str = "sqlite:///./moments.db"

    # Service-account key file; application default credentials when unset
    GOOGLE_APPLICATION_CREDENTIALS: Optional[str] = None

    # Public image URL. The thumbnail form is embeddable without CORS issues.
    IMAGE_URL_TEMPLATE: str = "https://drive.google.com/thumbnail?id={file_id}&sz=w{width}"
    IMAGE_WIDTH: int = 1000

    # Largest multipart form part accepted on uploads
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    def image_url(self, file_id: str) -> str:
        """Build the public, directly embeddable URL for a stored image."""
        return self.IMAGE_URL_TEMPLATE.format(file_id=file_id, width=self.IMAGE_WIDTH)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every request.
    """
    return Settings()
