"""Configuration and environment variables"""
import os
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Cloudinary (object storage for extracted images and original files)
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_folder: str = "nexlab"

    # Local storage fallback when Cloudinary is not configured
    upload_dir: str = "./uploads"
    local_storage_base_url: str = "/files"
    max_file_size: int = 500 * 1024 * 1024  # 500MB

    # Extraction
    extract_pdf_images: bool = True

    # Image upload strategy selection
    large_batch_image_count: int = 20
    large_image_bytes: int = 2 * 1024 * 1024  # 2MB

    # Simple (small batch) strategy
    simple_batch_size: int = 5
    simple_timeout_ms: int = 10000
    simple_batch_delay_ms: int = 500

    # Enhanced (large batch) strategy
    enhanced_batch_size: int = 2
    enhanced_timeout_ms: int = 15000
    enhanced_batch_delay_ms: int = 3000
    batch_timeout_factor: float = 1.5

    # Shared upload policy
    upload_max_retries: int = 3
    retry_base_delay_ms: int = 1000
    retry_max_delay_ms: int = 5000
    retry_jitter_ms: int = 1000
    compression_threshold: int = 2 * 1024 * 1024  # 2MB
    max_image_dimension: int = 1200  # pixels

    # Logging
    log_level: str = "INFO"

    # CORS Settings
    cors_origins: list = ["http://localhost:3000", "http://127.0.0.1:3000"]

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()


# Ensure upload directory exists
os.makedirs(settings.upload_dir, exist_ok=True)
