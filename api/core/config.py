"""
Configuration settings for the FastAPI application
"""
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Room Plant Editor API"
    version: str = "1.0.0"
    environment: str = "development"
    debug: bool = True

    # CORS
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ]

    # OpenAI (image edit)
    openai_api_key: str = ""
    openai_image_model: str = "dall-e-2"
    openai_timeout: float = 120.0
    openai_max_retries: int = 0  # Each request is a single attempt

    # Edit pipeline
    edit_image_size: int = 1024  # Edge length of the square canvas sent for editing
    mask_band_fraction: float = 0.3  # Bottom share of the image the model may change
    min_result_bytes: int = 64  # Anything this small is a truncated download
    max_upload_bytes: int = 20 * 1024 * 1024  # 20MB
    fetch_timeout: float = 60.0
    artifact_dir: Optional[str] = None  # Defaults to the system temp dir

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields from .env


# Global settings instance
settings = Settings()
