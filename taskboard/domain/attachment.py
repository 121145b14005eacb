"""Attachment metadata model."""

from pydantic import BaseModel, Field


class Attachment(BaseModel):
    """Metadata for a file attached to a task. The file itself lives elsewhere."""

    id: str
    task: str
    name: str
    size: int = Field(..., ge=0, description="Size in bytes")
    type: str = Field(..., description="MIME type")
    url: str = ""
    uploaded_at: str
