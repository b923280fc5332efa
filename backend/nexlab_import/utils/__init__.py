"""Utility functions and helpers"""
from .helpers import (
    generate_material_id,
    generate_image_filename,
    build_material_key,
    count_words,
    truncate,
)
from .timing import Clock, SystemClock, race_with_timeout
from .retry import RetryPolicy, run_with_retry
from .batching import iter_batches
from .placeholders import create_fallback_placeholder, is_placeholder_url

__all__ = [
    "generate_material_id",
    "generate_image_filename",
    "build_material_key",
    "count_words",
    "truncate",
    "Clock",
    "SystemClock",
    "race_with_timeout",
    "RetryPolicy",
    "run_with_retry",
    "iter_batches",
    "create_fallback_placeholder",
    "is_placeholder_url",
]
