"""
Request schemas for the montage API.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MontageRequest(BaseModel):
    """Request body for POST /api/generate-montage."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "videoUrls": ["https://www.youtube.com/watch?v=dQw4w9WgXcQ"],
                "interval": 30,
                "montageLength": 60,
                "resolution": "720p",
                "overlayText": "Summer 2024",
                "fontSize": 48,
                "customFilename": "summer",
            }
        },
    )

    video_urls: Optional[list[str]] = Field(
        None, alias="videoUrls", description="Source video URLs (only the first is used)"
    )
    interval: float = Field(..., ge=1, description="Length of each clip in seconds")
    montage_length: float = Field(
        ..., alias="montageLength", ge=0, description="Target total montage length in seconds"
    )
    resolution: str = Field("720p", description="Output resolution: 480p, 720p or 1080p")
    overlay_text: Optional[str] = Field(
        None, alias="overlayText", description="Text drawn centered over the montage"
    )
    font_size: Optional[int] = Field(
        None, alias="fontSize", ge=1, le=500, description="Overlay font size (default 48)"
    )
    custom_filename: Optional[str] = Field(
        None, alias="customFilename", description="Base name of the output file"
    )

    def source_urls(self) -> list[str]:
        """Non-blank source URLs, in request order."""
        return [url.strip() for url in self.video_urls or [] if url and url.strip()]
