from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    API_BASE_URL: str = "http://localhost:5000/api"
    # Relative archive-file URLs are served from the API host root
    FILE_BASE_URL: str = ""
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Persistent session (accessToken / refreshToken)
    SESSION_FILE: Path = Path.home() / ".rotaract" / "session.json"

    # Downloaded reports and archive files
    DOWNLOAD_DIR: Path = Path("downloads")

    LOG_LEVEL: str = "INFO"

    @model_validator(mode="after")
    def derive_file_base_url(self) -> "Settings":
        self.API_BASE_URL = self.API_BASE_URL.rstrip("/")
        if not self.FILE_BASE_URL:
            base = self.API_BASE_URL
            self.FILE_BASE_URL = base[: -len("/api")] if base.endswith("/api") else base
        return self


settings = Settings()
