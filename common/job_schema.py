from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from enum import Enum

class ImageState(str, Enum):
    QUEUED = "QUEUED"
    DOWNLOADING = "DOWNLOADING"
    DOWNLOADED = "DOWNLOADED"
    FAILED = "FAILED"

class ImageJob(BaseModel):
    id: str
    source_url: str          # url the caller submitted
    stored_url: str          # where the file is served once downloaded
    added_at: datetime
    completed_at: Optional[datetime] = None
    state: ImageState = ImageState.QUEUED
    error: Optional[str] = None

class ImageDetails(BaseModel):
    """Public view of a completed job (camelCase on the wire)."""
    model_config = ConfigDict(populate_by_name=True)

    source_url: str = Field(alias="sourceUrl")
    stored_url: str = Field(alias="storedUrl")
    added_at: datetime = Field(alias="addedAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")
    state: ImageState

    @classmethod
    def from_job(cls, job: ImageJob) -> "ImageDetails":
        return cls(
            source_url=job.source_url,
            stored_url=job.stored_url,
            added_at=job.added_at,
            completed_at=job.completed_at,
            state=job.state,
        )

class ImageSubmitRequest(BaseModel):
    url: Optional[str] = None

class ImageSubmitResponse(BaseModel):
    url: str

class MessageResponse(BaseModel):
    message: str
