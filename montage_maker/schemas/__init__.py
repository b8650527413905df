"""
Pydantic schemas for request/response models.
"""

from montage_maker.schemas.requests import MontageRequest
from montage_maker.schemas.responses import (
    ErrorResponse,
    HealthResponse,
    JobStatusResponse,
    JobSubmitResponse,
    MontageData,
    ReadinessResponse,
)

__all__ = [
    "MontageRequest",
    "ErrorResponse",
    "HealthResponse",
    "JobStatusResponse",
    "JobSubmitResponse",
    "MontageData",
    "ReadinessResponse",
]
