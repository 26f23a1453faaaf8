"""
Application Configuration
Loads settings from environment variables.
"""

from typing import List
from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "Avatar Booth API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Image transformation (Replicate)
    REPLICATE_API_TOKEN: str = ""
    REPLICATE_API_BASE: str = "https://api.replicate.com"
    # Deployment target takes priority over a bare model version
    REPLICATE_DEPLOYMENT_OWNER: str = ""
    REPLICATE_DEPLOYMENT_NAME: str = ""
    REPLICATE_MODEL_VERSION: str = ""

    # Upload storage (Cloudinary unsigned upload)
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_UPLOAD_PRESET: str = ""
    CLOUDINARY_FOLDER: str = ""
    CLOUDINARY_API_BASE: str = "https://api.cloudinary.com/v1_1"

    # Outbound HTTP
    HTTP_TIMEOUT: float = 60.0

    # Polling
    POLL_INTERVAL_SECONDS: float = 2.0  # Wait before every status check
    POLL_MAX_WAIT_SECONDS: float = 300.0  # Give up after 5 minutes
    POLL_STATUS_RETRIES: int = 0  # Transient status failures retried (0 = fatal)
    POLL_RETRY_BACKOFF: float = 1.0
    CANCEL_ON_TIMEOUT: bool = True

    # first | last | passthrough
    RESULT_SELECTION: str = "first"

    # Default job parameters (img2img avatar deployment)
    DEFAULT_PROMPT: str = (
        "cyberpunk futuristic portrait, neon lights, digital art, high quality, detailed"
    )
    DEFAULT_NEGATIVE_PROMPT: str = "blurry, low quality, distorted, deformed"
    DEFAULT_NUM_INFERENCE_STEPS: int = 25
    DEFAULT_GUIDANCE_SCALE: float = 7.5
    DEFAULT_STRENGTH: float = 0.8

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    @field_validator('REPLICATE_API_TOKEN', 'CLOUDINARY_UPLOAD_PRESET', mode='before')
    @classmethod
    def strip_secrets(cls, v):
        """Strip whitespace and newlines from secrets loaded from the environment."""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator('RESULT_SELECTION', mode='before')
    @classmethod
    def normalize_selection(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            if v not in ("first", "last", "passthrough"):
                raise ValueError("RESULT_SELECTION must be one of: first, last, passthrough")
        return v

    @field_validator('POLL_INTERVAL_SECONDS', 'POLL_MAX_WAIT_SECONDS')
    @classmethod
    def positive_duration(cls, v):
        if v <= 0:
            raise ValueError("polling durations must be positive")
        return v

    @property
    def replicate_configured(self) -> bool:
        has_target = bool(
            (self.REPLICATE_DEPLOYMENT_OWNER and self.REPLICATE_DEPLOYMENT_NAME)
            or self.REPLICATE_MODEL_VERSION
        )
        return bool(self.REPLICATE_API_TOKEN) and has_target

    @property
    def cloudinary_configured(self) -> bool:
        return bool(self.CLOUDINARY_CLOUD_NAME and self.CLOUDINARY_UPLOAD_PRESET)

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
