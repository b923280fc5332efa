"""Image upload data models"""
from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional


class UploadStage(str, Enum):
    PREPARING = "preparing"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"


class UploadStrategy(str, Enum):
    SIMPLE = "simple"
    ENHANCED = "enhanced"


class UploadOptions(BaseModel):
    """Per-call overrides for the upload orchestrator; unset fields use strategy defaults"""
    batch_size: Optional[int] = Field(default=None, gt=0)
    max_retries: Optional[int] = Field(default=None, gt=0)
    timeout_ms: Optional[int] = Field(default=None, gt=0)
    batch_timeout_ms: Optional[int] = Field(default=None, gt=0)
    compression_threshold: Optional[int] = Field(default=None, gt=0)
    max_image_dimension: Optional[int] = Field(default=None, gt=0)
    batch_delay_ms: Optional[int] = Field(default=None, ge=0)
    retry_base_delay_ms: Optional[int] = Field(default=None, ge=0)
    retry_max_delay_ms: Optional[int] = Field(default=None, ge=0)
    retry_jitter_ms: Optional[int] = Field(default=None, ge=0)


class UploadedImage(BaseModel):
    """Result for one image: a storage URL or a fallback placeholder"""
    url: str
    title: str
    original_filename: Optional[str] = None
    slide_number: int
    index: int  # position in the submitted list
    is_placeholder: bool = False
    storage_key: Optional[str] = None


class UploadProgress(BaseModel):
    """Progress snapshot pushed to the caller's sink"""
    stage: UploadStage
    completed: int
    total: int
    percentage: float
    current_batch: int
    total_batches: int
    failed_count: int
    success_count: int
    estimated_seconds_remaining: Optional[int] = None
    current_operation: str = ""
