"""
Application Configuration

Centralized settings management using Pydantic Settings.
Supports environment variables and .env files.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # ==========================================================================
    # App Settings
    # ==========================================================================
    APP_NAME: str = "Image Compose Service"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development, staging, PROD
    DEBUG: bool = True

    # ==========================================================================
    # Infrastructure
    # ==========================================================================
    REDIS_URL: str = "redis://localhost:6379/2"

    # ==========================================================================
    # Celery Settings
    # ==========================================================================
    CELERY_BROKER_URL: Optional[str] = None  # Falls back to REDIS_URL
    CELERY_RESULT_BACKEND: Optional[str] = None  # Falls back to REDIS_URL

    # ==========================================================================
    # Request Limits
    # ==========================================================================
    MAX_IMAGE_SIZE_BYTES: int = 20971520  # 20MB per binary payload
    MAX_BATCH_ITEMS: int = 100
    MAX_CONCURRENT_ITEMS: int = 4

    # ==========================================================================
    # Compose Defaults
    # ==========================================================================
    COMPOSE_BACKGROUND_PROPERTY: str = "bg"
    COMPOSE_PRODUCT_PROPERTY: str = "product"
    COMPOSE_OUTPUT_PROPERTY: str = "composed"
    COMPOSE_DEFAULT_PADDING: int = 10
    COMPOSE_DEFAULT_MODE: str = "detect_white_region"  # detect_white_region, fill_entire_background
    COMPOSE_DEFAULT_HORIZONTAL_ALIGNMENT: str = "center"  # start, center, end
    COMPOSE_DEFAULT_VERTICAL_ALIGNMENT: str = "bottom"  # top, center, bottom
    COMPOSE_OUTPUT_FORMAT: str = "png"  # png, jpeg, webp

    # ==========================================================================
    # Crop Defaults
    # ==========================================================================
    CROP_BINARY_PROPERTY: str = "data"
    CROP_OUTPUT_PROPERTY: str = "cropped"
    CROP_DEFAULT_TARGET_WIDTH: int = 500
    CROP_DEFAULT_TARGET_HEIGHT: int = 500

    # ==========================================================================
    # Logging Settings
    # ==========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT_JSON: bool = True  # JSON for production, console for development

    # ==========================================================================
    # CORS Settings
    # ==========================================================================
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://localhost:8000"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Global settings instance
settings = Settings()
