from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")
    APP_NAME: str = "Farm Upload Validator"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    # Root for every upload class directory; per-class subdirectories are fixed in code
    UPLOAD_ROOT: Path = Path("uploads")
    # Prefix used when building public URLs for accepted files
    PUBLIC_URL_PREFIX: str = "/uploads"
    # Bytes read from the client per chunk while streaming an upload to disk
    UPLOAD_CHUNK_SIZE: int = 1024 * 1024
    # CORS: comma-separated list of allowed origins (e.g. "http://localhost:3000,https://app.example.com"). Empty = same-origin only.
    CORS_ORIGINS: str = ""


settings = Settings()
