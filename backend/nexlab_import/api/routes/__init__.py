"""API route modules"""
from .materials import router as materials_router

__all__ = ["materials_router"]
