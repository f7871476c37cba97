"""
Persistence of meeting records, keyed by the Fireflies transcript id.
"""
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import select, update, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import MeetingRecord, async_session_maker, get_db_session, utcnow
from app.exceptions import (
    NotFoundError,
    PersistenceConstraintError,
    PersistenceUnavailableError,
    ValidationFailedError,
)
from app.logging_config import get_logger
from app.services.artifact_slots import SlotMatcher, match_artifact_slot

logger = get_logger(__name__)


# Fields an upsert may overwrite; anything else in the payload is ignored
UPSERT_COLUMNS = (
    "title",
    "meeting_date",
    "duration_seconds",
    "transcript_json",
    "summary",
)

INSERT_DEFAULTS = {
    "title": "",
    "meeting_date": None,
    "duration_seconds": 0,
    "transcript_json": "[]",
    "summary": "",
}

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _require_external_id(fields: Mapping[str, Any]) -> str:
    external_id = fields.get("external_id")
    if external_id is None or not str(external_id).strip():
        raise ValidationFailedError("externalId is required")
    return str(external_id).strip()


def _incoming_values(fields: Mapping[str, Any]) -> Dict[str, Any]:
    values = {k: fields[k] for k in UPSERT_COLUMNS if fields.get(k) is not None}
    if "duration_seconds" in values:
        values["duration_seconds"] = max(0, int(values["duration_seconds"]))
    return values


def to_client_shape(record: MeetingRecord) -> Dict[str, Any]:
    """
    Map a stored record to the shape Fireflies returns for a transcript.

    The summary is duplicated into ``overview`` and ``short_summary`` so the
    dashboard can render cached and live transcripts the same way.
    """
    sentences: List[Any] = []
    if record.transcript_json and record.transcript_json.strip():
        try:
            parsed = json.loads(record.transcript_json)
            if isinstance(parsed, list):
                sentences = parsed
        except ValueError:
            logger.warning("stored_transcript_unreadable", external_id=record.external_id)

    return {
        "id": record.external_id,
        "title": record.title,
        "date": record.meeting_date.isoformat() if record.meeting_date else None,
        "duration": record.duration_seconds,
        "sentences": sentences,
        "summary": {
            "overview": record.summary,
            "short_summary": record.summary,
        },
    }


class MeetingStore:
    """Keyed record store for meetings.

    Every write is a single statement in its own session. SQLAlchemy errors are
    translated to PersistenceConstraintError / PersistenceUnavailableError.
    """

    def __init__(self, session_maker: Optional[async_sessionmaker] = None):
        self._session_maker = session_maker or async_session_maker

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with get_db_session(self._session_maker) as session:
                yield session
        except IntegrityError as e:
            logger.error("store_constraint_violation", operation=operation, error=str(e.orig))
            raise PersistenceConstraintError(f"{operation} violated a constraint: {e.orig}") from e
        except (SQLAlchemyError, OSError) as e:
            logger.error("store_unavailable", operation=operation, error=str(e))
            raise PersistenceUnavailableError(f"{operation} failed: {str(e)}") from e

    async def find_by_external_id(self, external_id: str) -> Optional[MeetingRecord]:
        async with self._session("find_by_external_id") as session:
            result = await session.execute(
                select(MeetingRecord).where(MeetingRecord.external_id == external_id)
            )
            return result.scalar_one_or_none()

    async def find_by_internal_id(self, internal_id: int) -> Optional[MeetingRecord]:
        async with self._session("find_by_internal_id") as session:
            return await session.get(MeetingRecord, internal_id)

    async def list_meetings(self) -> List[MeetingRecord]:
        """All meetings, most recently cached first."""
        async with self._session("list_meetings") as session:
            result = await session.execute(
                select(MeetingRecord).order_by(MeetingRecord.created_at.desc(), MeetingRecord.id.desc())
            )
            return list(result.scalars().all())

    async def count_meetings(self) -> int:
        async with self._session("count_meetings") as session:
            result = await session.execute(select(func.count(MeetingRecord.id)))
            return result.scalar() or 0

    async def insert(self, fields: Mapping[str, Any]) -> MeetingRecord:
        """
        Insert a new record. A duplicate external id is a constraint error.

        Args:
            fields: Column values; None values take the column defaults
        """
        external_id = _require_external_id(fields)
        record = MeetingRecord(
            external_id=external_id,
            **{**INSERT_DEFAULTS, **_incoming_values(fields)}
        )
        async with self._session("insert") as session:
            session.add(record)
            await session.flush()

        logger.info("meeting_inserted", internal_id=record.id, external_id=external_id)
        return record

    async def upsert_by_external_id(self, fields: Mapping[str, Any]) -> MeetingRecord:
        """
        Insert or update the record for ``fields["external_id"]``.

        Runs as one INSERT ... ON CONFLICT DO UPDATE statement. On conflict only
        the non-None incoming fields are overwritten; ``id`` and ``created_at``
        are never touched.

        Raises:
            ValidationFailedError: external id missing or blank (no store access)
            PersistenceConstraintError / PersistenceUnavailableError
        """
        external_id = _require_external_id(fields)
        incoming = _incoming_values(fields)
        now = utcnow()

        insert_values = {
            **INSERT_DEFAULTS,
            **incoming,
            "external_id": external_id,
            "created_at": now,
            "updated_at": now,
        }
        update_values = {**incoming, "updated_at": now}

        async with self._session("upsert") as session:
            dialect = session.bind.dialect.name
            insert_for = _DIALECT_INSERTS.get(dialect)
            if insert_for is None:
                raise PersistenceUnavailableError(f"Upsert is not supported on {dialect}")

            stmt = (
                insert_for(MeetingRecord)
                .values(**insert_values)
                .on_conflict_do_update(index_elements=["external_id"], set_=update_values)
                .returning(MeetingRecord)
            )
            result = await session.scalars(stmt, execution_options={"populate_existing": True})
            record = result.one()

        logger.info(
            "meeting_upserted",
            internal_id=record.id,
            external_id=external_id,
            fields=sorted(incoming)
        )
        return record

    async def update_summary(self, internal_id: int, text: str) -> None:
        """
        Replace the summary of a record. Transcript fields are untouched.

        Raises:
            NotFoundError: No record with this internal id
        """
        async with self._session("update_summary") as session:
            result = await session.execute(
                update(MeetingRecord)
                .where(MeetingRecord.id == internal_id)
                .values(summary=text or "", updated_at=utcnow())
            )
            if result.rowcount == 0:
                raise NotFoundError(f"Meeting {internal_id} not found")

        logger.info("meeting_summary_updated", internal_id=internal_id)

    async def attach_artifacts(
        self,
        internal_id: int,
        files: Iterable[Mapping[str, Any]],
        matcher: SlotMatcher = match_artifact_slot,
    ) -> Dict[str, str]:
        """
        Write artifact files into their named slots plus a full snapshot.

        Files whose name does not resolve to a slot are still kept in the
        snapshot.

        Returns:
            Mapping of file name to the slot it was written into

        Raises:
            NotFoundError: No record with this internal id
        """
        snapshot = [
            {"name": f.get("name") or "", "content": f.get("content") or ""}
            for f in files
        ]

        values: Dict[str, Any] = {}
        matched: Dict[str, str] = {}
        for item in snapshot:
            slot = matcher(item["name"])
            if slot:
                values[slot] = item["content"]
                matched[item["name"]] = slot

        values["artifacts_json"] = json.dumps(snapshot)
        values["updated_at"] = utcnow()

        async with self._session("attach_artifacts") as session:
            result = await session.execute(
                update(MeetingRecord).where(MeetingRecord.id == internal_id).values(**values)
            )
            if result.rowcount == 0:
                raise NotFoundError(f"Meeting {internal_id} not found")

        logger.info(
            "meeting_artifacts_attached",
            internal_id=internal_id,
            files=len(snapshot),
            slots=sorted(matched.values())
        )
        return matched
