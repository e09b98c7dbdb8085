"""Configuration management for SheetSync."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _parse_cors_origins() -> list[str]:
    """Parse CORS origins from environment variable."""
    cors_env = os.getenv("CORS_ALLOW_ORIGINS")
    if cors_env:
        return cors_env.split(",")
    return ["*"]


class Settings(BaseModel):
    """Application settings."""

    # Google Sheets API credentials
    google_credentials_path: Path = Path(os.getenv("GOOGLE_CREDENTIALS_PATH", "credentials.json"))
    google_token_path: Path = Path(os.getenv("GOOGLE_TOKEN_PATH", "token.json"))

    # Target spreadsheet holding one tab per resource
    spreadsheet_id: Optional[str] = os.getenv("SPREADSHEET_ID")

    # Where field mappings live ('sqlite' or 'sheet')
    mapping_backend: str = os.getenv("MAPPING_BACKEND", "sqlite")
    mapping_sheet_name: str = os.getenv("MAPPING_SHEET_NAME", "HeaderMappings")

    # Database path for the sqlite mapping backend
    database_path: Path = Path(os.getenv("DATABASE_PATH", "data/sheetsync.db"))

    # Brokerage API
    api_base_url: str = os.getenv("API_BASE_URL", "https://live.trading212.com/api/v0")
    api_key: Optional[str] = os.getenv("API_KEY")
    request_timeout_seconds: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))

    # Schema inference and cell rendering
    max_path_depth: int = int(os.getenv("MAX_PATH_DEPTH", "64"))
    timestamp_format: str = os.getenv("TIMESTAMP_FORMAT", "%Y-%m-%d %H:%M:%S")

    # Server settings
    host: str = os.getenv("HOST", "127.0.0.1")
    port: int = int(os.getenv("PORT", "8000"))
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS settings (comma-separated list of allowed origins, or * for all)
    cors_allow_origins: list[str] = _parse_cors_origins()


settings = Settings()
