"""Configuration settings for the classroom attendance service."""
from typing import List, Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    These settings are loaded from environment variables with the following precedence:
    1. Environment variables
    2. .env file
    3. Default values

    Attributes:
        MATCH_THRESHOLD: Minimum similarity (0-1, inclusive) for a face to claim an identity
        DATABASE_URL: SQLAlchemy async URL; empty string keeps the registry in memory only
    """
    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",  # No prefix for environment variables
        env_nested_delimiter="__"  # Use double underscore for nested settings
    )

    # Core Settings
    PROJECT_NAME: str = "ClassRoll Attendance Service"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"

    # CORS Settings
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins(self) -> List[str]:
        """Get list of allowed origins."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    # Model Settings
    MODEL_NAME: str = "buffalo_l"
    MODEL_CACHE_DIR: str = ".model_cache"
    MODEL_PROVIDERS: str = "CPUExecutionProvider"
    DETECTION_SIZE: int = 640
    EMBEDDING_DIMENSION: int = 512

    @property
    def model_providers(self) -> List[str]:
        """Get list of onnxruntime execution providers."""
        return [provider.strip() for provider in self.MODEL_PROVIDERS.split(",") if provider.strip()]

    @property
    def detection_size(self) -> Tuple[int, int]:
        """Detector input size as (width, height)."""
        return (self.DETECTION_SIZE, self.DETECTION_SIZE)

    # Detection Settings
    MAX_FACES_PER_IMAGE: int = 50
    MIN_DETECTION_SCORE: float = 0.0  # Low-confidence faces are reported, not dropped
    FACE_CROP_MARGIN: float = 0.4  # Fraction of box size added on each side before extraction
    MAX_IMAGE_PIXELS: int = 1920 * 1080  # ~2MP (Full HD)

    # Face matching settings
    MATCH_THRESHOLD: float = 0.6
    HIGH_CONFIDENCE_THRESHOLD: float = 0.8
    MEDIUM_CONFIDENCE_THRESHOLD: float = 0.6

    # Persistence
    DATABASE_URL: str = "sqlite+aiosqlite:///./classroll.db"

    # Optional settings with defaults
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000


settings = Settings()
