import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class Settings(BaseModel):
    google_maps_api_key: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
    mongodb_uri: str = os.getenv("MONGODB_URI", "")
    database_name: str = os.getenv("DATABASE_NAME", "placecheck_db")
    environment: str = os.getenv("ENVIRONMENT", "production")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    places_request_timeout: float = float(os.getenv("PLACES_REQUEST_TIMEOUT", "10"))

    # Matching / batching
    match_threshold: float = float(os.getenv("MATCH_THRESHOLD", "0.5"))
    validation_batch_size: int = int(os.getenv("VALIDATION_BATCH_SIZE", "5"))
    validation_batch_delay_ms: int = int(os.getenv("VALIDATION_BATCH_DELAY_MS", "200"))
    max_photos: int = int(os.getenv("MAX_PHOTOS", "5"))
    max_reviews: int = int(os.getenv("MAX_REVIEWS", "3"))

    # Availability
    closing_soon_minutes: int = int(os.getenv("CLOSING_SOON_MINUTES", "30"))


def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Set up root logging for scripts and local runs."""
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
