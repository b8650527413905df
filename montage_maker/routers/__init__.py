"""
FastAPI routers for the montage backend.
"""

from montage_maker.routers import health, montage

__all__ = ["health", "montage"]
