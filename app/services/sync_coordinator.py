"""
Cache-vs-fetch policies for meetings.

Two entry points, both keyed by the Fireflies transcript id:

* ``get_meeting`` (read-through): serve the cached record when there is one,
  otherwise fetch, cache best-effort, and return the live payload.
* ``sync_meeting`` (always-sync): fetch, upsert, and return the keys the
  dashboard needs for summary edits and artifact generation.

``save_meeting`` is the explicit upsert for a transcript the dashboard already
holds.
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from app.database import utcnow
from app.exceptions import PersistenceFailedError, ValidationFailedError
from app.logging_config import LogContext, get_logger
from app.monitoring import cache_write_failures_total, meeting_cache_lookups_total, meeting_syncs_total
from app.services.date_normalizer import normalize_date
from app.services.fireflies_client import FirefliesClient
from app.services.meeting_store import MeetingStore, to_client_shape

logger = get_logger(__name__)


@dataclass(frozen=True)
class SyncResult:
    internal_id: int
    external_id: str


def round_duration(raw: Any) -> Optional[int]:
    """Fractional upstream seconds to a non-negative int; None if absent."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return max(0, int(round(float(raw))))
    except (TypeError, ValueError, OverflowError):
        return None


def transcript_to_fields(transcript: Mapping[str, Any], external_id: str) -> Dict[str, Any]:
    """
    Map a raw Fireflies transcript to record fields.

    Absent upstream values stay None, so an upsert keeps what is stored and an
    insert falls back to the column defaults.
    """
    summary = transcript.get("summary") or {}
    sentences = transcript.get("sentences")

    return {
        "external_id": transcript.get("id") or external_id,
        "title": transcript.get("title"),
        "meeting_date": normalize_date(transcript.get("date")),
        "duration_seconds": round_duration(transcript.get("duration")),
        "transcript_json": json.dumps(sentences) if sentences is not None else None,
        "summary": summary.get("overview") if isinstance(summary, Mapping) else None,
    }


class SyncCoordinator:
    """Decides between the local cache and Fireflies."""

    def __init__(self, store: MeetingStore, client: FirefliesClient):
        self.store = store
        self.client = client

    async def _lookup_cached(self, external_id: str):
        try:
            return await self.store.find_by_external_id(external_id)
        except PersistenceFailedError as e:
            # The cache is optional on the read path
            logger.warning("cache_lookup_failed", external_id=external_id, error=str(e))
            return None

    async def get_meeting(self, external_id: str) -> Dict[str, Any]:
        """
        Read-through lookup.

        Returns the cached record mapped to the client shape on a hit. On a
        miss, fetches from Fireflies, caches the result best-effort, and returns
        the fetched payload unmodified.

        Raises:
            NotFoundError / UpstreamUnavailableError: from the fetch on a miss
        """
        with LogContext(external_id=external_id, policy="read_through"):
            record = await self._lookup_cached(external_id)
            if record is not None:
                meeting_cache_lookups_total.labels(result="hit").inc()
                logger.info("meeting_cache_hit", internal_id=record.id)
                return to_client_shape(record)

            meeting_cache_lookups_total.labels(result="miss").inc()
            transcript = await self.client.fetch_one(external_id)

            try:
                await self.store.insert(transcript_to_fields(transcript, external_id))
            except (PersistenceFailedError, ValidationFailedError) as e:
                cache_write_failures_total.labels(error_type=type(e).__name__).inc()
                logger.warning("cache_write_failed", error_type=type(e).__name__, error=str(e))

            return transcript

    async def sync_meeting(self, external_id: str) -> SyncResult:
        """
        Always fetch from Fireflies and upsert the result.

        Raises:
            NotFoundError / UpstreamUnavailableError: from the fetch
            PersistenceConstraintError / PersistenceUnavailableError: from the upsert
        """
        with LogContext(external_id=external_id, policy="always_sync"):
            transcript = await self.client.fetch_one(external_id)
            fields = transcript_to_fields(transcript, external_id)

            try:
                record = await self.store.upsert_by_external_id(fields)
            except PersistenceFailedError:
                meeting_syncs_total.labels(source="sync", status="failed").inc()
                raise

            meeting_syncs_total.labels(source="sync", status="ok").inc()
            return SyncResult(internal_id=record.id, external_id=record.external_id)

    async def save_meeting(self, fields: Mapping[str, Any]) -> SyncResult:
        """
        Explicit upsert of a transcript supplied by the dashboard.

        Unlike the fetch paths, a missing or unparsable meeting date is stored
        as the current time.

        Raises:
            ValidationFailedError: external id missing or blank
            PersistenceConstraintError / PersistenceUnavailableError
        """
        external_id = fields.get("external_id")
        if external_id is None or not str(external_id).strip():
            raise ValidationFailedError("externalId is required")

        values = dict(fields)
        values["meeting_date"] = normalize_date(fields.get("meeting_date")) or utcnow()
        values["duration_seconds"] = round_duration(fields.get("duration_seconds"))

        with LogContext(external_id=str(external_id).strip(), policy="client_upsert"):
            try:
                record = await self.store.upsert_by_external_id(values)
            except PersistenceFailedError:
                meeting_syncs_total.labels(source="client", status="failed").inc()
                raise

            meeting_syncs_total.labels(source="client", status="ok").inc()
            return SyncResult(internal_id=record.id, external_id=record.external_id)
