"""
Pydantic schemas for API responses.

Every action answers with an envelope: success flag, human-readable message,
and action-specific fields alongside them at the top level.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Envelope Models
# =============================================================================

class Envelope(BaseModel):
    """Uniform response shape for every action. Failures carry only these two fields."""
    success: bool = Field(..., description="Whether the action succeeded")
    message: str = Field(..., description="Outcome description")


class MomentCreated(Envelope):
    """
    Envelope returned by addMoment.

    The moment's own fields sit at the top level, so `message` echoes the
    submitted message text rather than an outcome description.
    """
    id: int = Field(..., description="Creation time in milliseconds, used as the row id")
    name: str
    image: str = Field(..., description="Image URL as submitted")
    rotation: float = Field(..., description="Rotation in degrees")
    timestamp: str = Field(..., description="Creation time in ISO-8601 UTC")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "success": True,
                    "message": "Congratulations!",
                    "id": 1705312800123,
                    "name": "Asha",
                    "image": "https://drive.google.com/thumbnail?id=abc&sz=w1000",
                    "rotation": 0.0,
                    "timestamp": "2024-01-15T10:00:00.123Z",
                }
            ]
        }
    }


class ImageUploaded(Envelope):
    """Envelope returned by uploadImage."""
    imageUrl: str = Field(..., description="Public, directly embeddable image URL")
    fileId: str = Field(..., description="Blob store file identifier")


class MomentRecord(BaseModel):
    """
    A moment as listed by getMoments.
    Stored cells are not validated, so id/name/message/image pass through as read.
    """
    id: Any
    name: Any
    message: Any
    image: Any
    rotation: float = 0.0


class MomentsList(Envelope):
    """Envelope returned by getMoments, newest first."""
    moments: list[MomentRecord] = Field(default_factory=list)


# =============================================================================
# Health Models
# =============================================================================

class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")
