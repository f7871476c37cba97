"""
Pydantic models for request/response validation.
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional, Union
from datetime import datetime


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys, also accepts snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UpsertMeetingRequest(CamelModel):
    """Transcript the dashboard already holds, to be cached under its external id."""
    external_id: Optional[str] = None
    title: Optional[str] = None
    meeting_date: Optional[Union[int, float, str]] = None
    duration_seconds: Optional[float] = Field(None, ge=0)
    transcript_json: Optional[str] = None
    summary: Optional[str] = None


class MeetingKeys(CamelModel):
    """Keys returned after a sync or upsert."""
    internal_id: int
    external_id: str


class UpdateSummaryRequest(BaseModel):
    summary: str


class GenerateFilesRequest(BaseModel):
    summary: str


class ArtifactFile(BaseModel):
    name: str
    content: str = ""


class SaveFilesRequest(CamelModel):
    internal_id: int
    files: List[ArtifactFile]


class StoredMeeting(CamelModel):
    """Row of the stored meetings list."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    external_id: str
    title: str
    created_at: datetime
    meeting_date: Optional[datetime] = None
    summary: str


class StoredMeetingDetail(StoredMeeting):
    duration_seconds: int
    transcript_json: str
    functional_doc: Optional[str] = None
    mockups: Optional[str] = None
    markdown: Optional[str] = None


class AiSummaryResponse(CamelModel):
    ai_summary: str


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str
    details: Optional[str] = None


class HealthCheck(BaseModel):
    """Health check response."""
    status: str
    database: str
    total_meetings: int
    timestamp: str
