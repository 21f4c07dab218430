from pathlib import Path

from pydantic_settings import BaseSettings

# Resolve .env from project root (one level above backend/)
_ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    app_name: str = "Exam Relay"
    log_level: str = "INFO"

    # Server
    api_host: str = "0.0.0.0"
    api_port: int = 3000

    # Rooms
    default_room: str = "default"

    # Live stream
    subscriber_queue_size: int = 16
    stream_keepalive_seconds: float = 15.0

    # Ingest
    max_body_bytes: int = 5_242_880  # 5MB, Moodle attempt pages are large
    ingest_rate_limit: str = "120/minute"

    model_config = {"env_file": str(_ENV_FILE), "extra": "ignore"}


settings = Settings()
