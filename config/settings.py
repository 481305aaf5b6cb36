import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env
BASE_DIR = Path(__file__).resolve().parent
load_dotenv(BASE_DIR / ".env")


class Settings:
    # Service-account JSON text or path to a JSON key file.
    # When unset, application default credentials are used.
    GCP_CREDENTIALS: str | None = os.getenv("GCP_CREDENTIALS")
    GCP_PROJECT_ID: str | None = os.getenv("GCP_PROJECT_ID")
    GCP_LOCATION: str = os.getenv("GCP_LOCATION", "us-central1")

    STORAGE_BUCKET: str | None = os.getenv("STORAGE_BUCKET")
    STORAGE_PREFIX: str = os.getenv("STORAGE_PREFIX", "ai-images")

    MAX_BODY_BYTES: int = int(os.getenv("MAX_BODY_BYTES", str(4_500_000)))

    REQUEST_TIMEOUT: float = float(os.getenv("REQUEST_TIMEOUT", "240"))  # seconds
    EXECUTION_TIMEOUT: float = float(os.getenv("EXECUTION_TIMEOUT", "300"))  # seconds

    MAX_ATTEMPTS: int = int(os.getenv("MAX_ATTEMPTS", "3"))
    RETRY_BACKOFF: float = float(os.getenv("RETRY_BACKOFF", "2.0"))  # seconds x attempt
    FANOUT_STAGGER: float = float(os.getenv("FANOUT_STAGGER", "0.8"))  # seconds x slot

    REFUSAL_EXCERPT_CHARS: int = int(os.getenv("REFUSAL_EXCERPT_CHARS", "200"))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
