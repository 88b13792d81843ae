import os
from typing import Optional
from urllib.parse import quote_plus

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()  # Load environment variables from .env file


def _default_database_url() -> str:
    # Construct from individual components with proper URL encoding
    user = os.getenv("POSTGRES_USER", "YourUser")
    password = quote_plus(os.getenv("POSTGRES_PASSWORD", "YourPassword"))
    database = os.getenv("POSTGRES_DB", "YourDatabase")
    host = os.getenv("DB_HOST", "db")  # Use 'db' for Docker, 'localhost' for local dev
    return f"postgresql://{user}:{password}@{host}:5432/{database}"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = _default_database_url()

    # Object store: "local" keeps blobs on disk, "gcs" uses a Cloud Storage bucket
    STORAGE_BACKEND: str = "local"
    LOCAL_STORAGE_DIR: str = "uploads"
    GCS_BUCKET_NAME: Optional[str] = None

    # Identity: "firebase" verifies Firebase ID tokens, "jwt" verifies HS256 tokens
    AUTH_PROVIDER: str = "firebase"
    FIREBASE_CREDENTIALS_PATH: str = "voicenotes-firebase-adminsdk.json"
    CHECK_REVOKED_TOKENS: bool = False
    ALGORITHM: str = "HS256"
    JWT_SECRET_KEY: Optional[str] = None  # should be kept secret

    # "inline" runs the pipeline inside the request, "queued" hands it to arq
    PROCESSING_MODE: str = "queued"

    # "mock" skips the model calls entirely
    AI_BACKEND: str = "gemini"
    GOOGLE_CLOUD_PROJECT: Optional[str] = None
    GOOGLE_CLOUD_LOCATION: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.5-flash"
    TRANSCRIPTION_TIMEOUT_SECONDS: float = 120
    SUMMARY_TIMEOUT_SECONDS: float = 60

    MAX_UPLOAD_BYTES: int = 100 * 1024 * 1024  # 100MB
    MAX_CHUNK_BYTES: int = 25 * 1024 * 1024  # 25MB

    DEDUP_TTL_SECONDS: int = 30
    DEDUP_SWEEP_INTERVAL_MINUTES: int = 5
    STUCK_PROCESSING_MINUTES: int = 15

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0


settings = Settings()
