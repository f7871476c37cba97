"""
Meeting Dashboard - API Routes

Fireflies pass-through, cached meetings, summary edits and artifact files.
"""
from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST
from datetime import datetime
from typing import List, Optional

from app.config import settings
from app.exceptions import NotFoundError, PersistenceFailedError
from app.models import (
    AiSummaryResponse, ArtifactFile, GenerateFilesRequest, HealthCheck, MeetingKeys,
    SaveFilesRequest, StoredMeeting, StoredMeetingDetail,
    UpdateSummaryRequest, UpsertMeetingRequest,
)
from app.monitoring import get_metrics
from app.services.artifact_generator import OpenAIArtifactGenerator
from app.services.artifact_workflow import ArtifactWorkflow
from app.services.fireflies_client import FirefliesClient
from app.services.meeting_store import MeetingStore
from app.services.sync_coordinator import SyncCoordinator


# ============================================
# CREATE API ROUTER
# ============================================

router = APIRouter()


# ============================================
# DEPENDENCY INJECTION
# ============================================

def get_store() -> MeetingStore:
    return MeetingStore()


def get_fireflies_client() -> FirefliesClient:
    return FirefliesClient(
        settings.fireflies_api_key,
        api_url=settings.fireflies_api_url,
        timeout=settings.fireflies_timeout_seconds,
    )


def get_artifact_generator() -> Optional[OpenAIArtifactGenerator]:
    """OpenAI generator, or None when no API key is configured."""
    if not settings.is_openai_configured:
        return None
    return OpenAIArtifactGenerator(
        settings.openai_api_key,
        model=settings.openai_model,
        api_url=settings.openai_api_url,
        timeout=settings.openai_timeout_seconds,
    )


def get_sync_coordinator(
    store: MeetingStore = Depends(get_store),
    client: FirefliesClient = Depends(get_fireflies_client),
) -> SyncCoordinator:
    return SyncCoordinator(store, client)


def get_artifact_workflow(
    store: MeetingStore = Depends(get_store),
    generator: Optional[OpenAIArtifactGenerator] = Depends(get_artifact_generator),
) -> ArtifactWorkflow:
    return ArtifactWorkflow(store, generator)


# ============================================
# FIREFLIES ROUTES
# ============================================

@router.get("/api/external/meetings")
async def list_external_meetings(
    limit: Optional[int] = Query(None, ge=1, le=100),
    client: FirefliesClient = Depends(get_fireflies_client),
):
    """List recent transcripts straight from Fireflies."""
    return await client.fetch_list(limit or settings.external_list_limit)


@router.get("/api/external/meetings/{external_id}")
async def get_external_meeting(
    external_id: str,
    coordinator: SyncCoordinator = Depends(get_sync_coordinator),
):
    """Cached meeting if present, otherwise fetched from Fireflies and cached."""
    return await coordinator.get_meeting(external_id)


@router.post("/api/external/meetings/{external_id}/sync", response_model=MeetingKeys)
async def sync_external_meeting(
    external_id: str,
    coordinator: SyncCoordinator = Depends(get_sync_coordinator),
):
    """Fetch from Fireflies and upsert, returning the keys of the stored record."""
    result = await coordinator.sync_meeting(external_id)
    return MeetingKeys(internal_id=result.internal_id, external_id=result.external_id)


@router.post("/api/external/generate-files", response_model=List[ArtifactFile])
async def generate_files(
    body: GenerateFilesRequest,
    workflow: ArtifactWorkflow = Depends(get_artifact_workflow),
):
    """Generate the functional doc, mockups and markdown drafts for a summary."""
    return await workflow.generate(body.summary)


@router.post("/api/external/save-files", status_code=status.HTTP_204_NO_CONTENT)
async def save_files(
    body: SaveFilesRequest,
    workflow: ArtifactWorkflow = Depends(get_artifact_workflow),
):
    """Attach edited drafts to a stored meeting."""
    await workflow.save(body.internal_id, [f.model_dump() for f in body.files])
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================
# STORED MEETING ROUTES
# ============================================

@router.get("/api/meetings", response_model=List[StoredMeeting])
async def list_meetings(store: MeetingStore = Depends(get_store)):
    """Stored meetings, most recently cached first."""
    return await store.list_meetings()


@router.post("/api/meetings/upsert", response_model=MeetingKeys)
async def upsert_meeting(
    body: UpsertMeetingRequest,
    coordinator: SyncCoordinator = Depends(get_sync_coordinator),
):
    """Insert or update a meeting by its Fireflies id."""
    result = await coordinator.save_meeting(body.model_dump())
    return MeetingKeys(internal_id=result.internal_id, external_id=result.external_id)


@router.get("/api/meetings/{internal_id}", response_model=StoredMeetingDetail)
async def get_meeting(internal_id: int, store: MeetingStore = Depends(get_store)):
    record = await store.find_by_internal_id(internal_id)
    if record is None:
        raise NotFoundError(f"Meeting {internal_id} not found")
    return record


@router.put("/api/meetings/{internal_id}/summary", status_code=status.HTTP_204_NO_CONTENT)
async def update_summary(
    internal_id: int,
    body: UpdateSummaryRequest,
    store: MeetingStore = Depends(get_store),
):
    await store.update_summary(internal_id, body.summary)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/api/meetings/{internal_id}/download-summary")
async def download_summary(internal_id: int, store: MeetingStore = Depends(get_store)):
    """Plain-text export of a meeting summary."""
    record = await store.find_by_internal_id(internal_id)
    if record is None:
        raise NotFoundError(f"Meeting {internal_id} not found")

    date_text = record.meeting_date.isoformat() if record.meeting_date else ""
    content = f"Meeting Title: {record.title}\nDate: {date_text}\n\nSummary:\n{record.summary}"
    return PlainTextResponse(
        content,
        headers={"Content-Disposition": 'attachment; filename="summary.txt"'}
    )


@router.post("/api/meetings/{internal_id}/generate-artifacts", response_model=List[ArtifactFile])
async def generate_meeting_artifacts(
    internal_id: int,
    workflow: ArtifactWorkflow = Depends(get_artifact_workflow),
):
    """Generate drafts from the stored summary of a meeting."""
    return await workflow.generate_for_meeting(internal_id)


@router.post("/api/meetings/{internal_id}/generate-summary", response_model=AiSummaryResponse)
async def generate_meeting_summary(
    internal_id: int,
    workflow: ArtifactWorkflow = Depends(get_artifact_workflow),
):
    """AI summary of the stored summary. Nothing is saved."""
    ai_summary = await workflow.summarize_meeting(internal_id)
    return AiSummaryResponse(ai_summary=ai_summary)


# ============================================
# OPERATIONS
# ============================================

@router.get("/health", response_model=HealthCheck)
async def health_check(store: MeetingStore = Depends(get_store)):
    """Health check endpoint for monitoring."""
    try:
        total = await store.count_meetings()
        db_status = "connected"
    except PersistenceFailedError:
        total = 0
        db_status = "disconnected"

    return HealthCheck(
        status="healthy",
        database=db_status,
        total_meetings=total,
        timestamp=datetime.now().isoformat()
    )


@router.get("/metrics")
async def metrics():
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)
