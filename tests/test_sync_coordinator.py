"""
Tests for the read-through and always-sync policies.
"""
import json
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from app.exceptions import (
    NotFoundError,
    PersistenceConstraintError,
    PersistenceUnavailableError,
    UpstreamUnavailableError,
    ValidationFailedError,
)
from app.services.sync_coordinator import SyncCoordinator, round_duration, transcript_to_fields


UTC = timezone.utc


@pytest.mark.unit
class TestTranscriptToFields:

    def test_maps_fireflies_payload(self, fireflies_transcript):
        fields = transcript_to_fields(fireflies_transcript, "abc")

        assert fields["external_id"] == "abc"
        assert fields["title"] == "Standup"
        assert fields["meeting_date"] == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)
        assert fields["duration_seconds"] == 930
        assert json.loads(fields["transcript_json"]) == fireflies_transcript["sentences"]
        assert fields["summary"] == "Team confirmed the deploy is green."

    def test_absent_values_stay_none(self):
        fields = transcript_to_fields({"id": "abc"}, "abc")
        assert fields["title"] is None
        assert fields["meeting_date"] is None
        assert fields["duration_seconds"] is None
        assert fields["transcript_json"] is None
        assert fields["summary"] is None

    def test_falls_back_to_requested_id(self):
        assert transcript_to_fields({"title": "x"}, "requested")["external_id"] == "requested"

    @pytest.mark.parametrize("raw,expected", [(930.4, 930), (930.6, 931), (0, 0), (-3.2, 0), (None, None), ("12.2", 12), ("n/a", None)])
    def test_round_duration(self, raw, expected):
        assert round_duration(raw) == expected


@pytest.mark.unit
class TestReadThrough:
    """get_meeting: cache first, fetch and persist on miss."""

    async def test_hit_serves_cache_without_fetch(self, store, mock_fireflies_client):
        await store.insert({"external_id": "X", "title": "Cached", "summary": "cached summary"})
        coordinator = SyncCoordinator(store, mock_fireflies_client)

        result = await coordinator.get_meeting("X")

        assert result["summary"]["overview"] == "cached summary"
        assert result["summary"]["short_summary"] == "cached summary"
        assert mock_fireflies_client.fetch_one.await_count == 0

    async def test_miss_fetches_once_persists_and_returns_payload(
        self, store, mock_fireflies_client, fireflies_transcript
    ):
        coordinator = SyncCoordinator(store, mock_fireflies_client)

        result = await coordinator.get_meeting("abc")

        assert result is fireflies_transcript
        mock_fireflies_client.fetch_one.assert_awaited_once_with("abc")
        stored = await store.find_by_external_id("abc")
        assert stored is not None
        assert stored.summary == "Team confirmed the deploy is green."

    async def test_end_to_end_standup(self, store, mock_fireflies_client):
        coordinator = SyncCoordinator(store, mock_fireflies_client)

        await coordinator.get_meeting("abc")
        stored = await store.find_by_external_id("abc")

        assert stored.duration_seconds == 930
        assert stored.meeting_date == datetime(1970, 1, 1, tzinfo=UTC) + timedelta(milliseconds=1700000000000)
        assert stored.title == "Standup"

        second = await coordinator.get_meeting("abc")

        assert second["summary"]["overview"] == "Team confirmed the deploy is green."
        assert second["duration"] == 930
        assert len(second["sentences"]) == 2
        assert mock_fireflies_client.fetch_one.await_count == 1

    @pytest.mark.parametrize("error", [
        PersistenceUnavailableError("database is down"),
        PersistenceConstraintError("duplicate external_id"),
    ])
    async def test_cache_write_failure_is_swallowed(
        self, mock_store, mock_fireflies_client, fireflies_transcript, error
    ):
        mock_store.find_by_external_id.return_value = None
        mock_store.insert.side_effect = error
        coordinator = SyncCoordinator(mock_store, mock_fireflies_client)

        result = await coordinator.get_meeting("abc")

        assert result == fireflies_transcript
        mock_store.insert.assert_awaited_once()

    async def test_cache_lookup_failure_falls_back_to_fetch(
        self, mock_store, mock_fireflies_client, fireflies_transcript
    ):
        mock_store.find_by_external_id.side_effect = PersistenceUnavailableError("down")
        mock_store.insert.side_effect = PersistenceUnavailableError("down")
        coordinator = SyncCoordinator(mock_store, mock_fireflies_client)

        assert await coordinator.get_meeting("abc") == fireflies_transcript

    async def test_fetch_errors_propagate(self, store, mock_fireflies_client):
        mock_fireflies_client.fetch_one.side_effect = UpstreamUnavailableError("boom", status_code=500)
        coordinator = SyncCoordinator(store, mock_fireflies_client)

        with pytest.raises(UpstreamUnavailableError):
            await coordinator.get_meeting("abc")
        assert await store.find_by_external_id("abc") is None

    async def test_upstream_not_found_propagates(self, store, mock_fireflies_client):
        mock_fireflies_client.fetch_one.side_effect = NotFoundError("missing")
        coordinator = SyncCoordinator(store, mock_fireflies_client)

        with pytest.raises(NotFoundError):
            await coordinator.get_meeting("missing")


@pytest.mark.unit
class TestAlwaysSync:
    """sync_meeting: always fetch, always upsert."""

    async def test_fetches_even_when_cached(self, store, mock_fireflies_client):
        cached = await store.insert({"external_id": "abc", "title": "Old title", "summary": "old"})
        coordinator = SyncCoordinator(store, mock_fireflies_client)

        result = await coordinator.sync_meeting("abc")

        mock_fireflies_client.fetch_one.assert_awaited_once_with("abc")
        assert result.internal_id == cached.id
        assert result.external_id == "abc"
        stored = await store.find_by_external_id("abc")
        assert stored.title == "Standup"
        assert stored.summary == "Team confirmed the deploy is green."
        assert stored.created_at == cached.created_at

    async def test_inserts_when_absent(self, store, mock_fireflies_client):
        coordinator = SyncCoordinator(store, mock_fireflies_client)

        result = await coordinator.sync_meeting("abc")

        stored = await store.find_by_internal_id(result.internal_id)
        assert stored.external_id == "abc"
        assert stored.duration_seconds == 930

    async def test_absent_upstream_fields_keep_stored_values(self, store, mock_fireflies_client):
        await store.insert({
            "external_id": "abc",
            "title": "Kept title",
            "meeting_date": datetime(2024, 1, 2, tzinfo=UTC),
            "summary": "kept summary",
        })
        mock_fireflies_client.fetch_one.return_value = {"id": "abc", "duration": 60.2, "date": None}
        coordinator = SyncCoordinator(store, mock_fireflies_client)

        await coordinator.sync_meeting("abc")

        stored = await store.find_by_external_id("abc")
        assert stored.title == "Kept title"
        assert stored.meeting_date == datetime(2024, 1, 2, tzinfo=UTC)
        assert stored.summary == "kept summary"
        assert stored.duration_seconds == 60

    async def test_persistence_errors_surface(self, mock_store, mock_fireflies_client):
        mock_store.upsert_by_external_id.side_effect = PersistenceUnavailableError("down")
        coordinator = SyncCoordinator(mock_store, mock_fireflies_client)

        with pytest.raises(PersistenceUnavailableError):
            await coordinator.sync_meeting("abc")

    async def test_constraint_errors_stay_distinct(self, mock_store, mock_fireflies_client):
        mock_store.upsert_by_external_id.side_effect = PersistenceConstraintError("dup")
        coordinator = SyncCoordinator(mock_store, mock_fireflies_client)

        with pytest.raises(PersistenceConstraintError):
            await coordinator.sync_meeting("abc")


@pytest.mark.unit
class TestClientUpsert:
    """save_meeting: explicit upsert from the dashboard."""

    async def test_missing_date_defaults_to_now(self, store, mock_fireflies_client):
        coordinator = SyncCoordinator(store, mock_fireflies_client)
        before = datetime.now(UTC)

        result = await coordinator.save_meeting({"external_id": "ff-9", "title": "Demo"})

        stored = await store.find_by_internal_id(result.internal_id)
        assert stored.meeting_date is not None
        assert before - timedelta(seconds=1) <= stored.meeting_date <= datetime.now(UTC) + timedelta(seconds=1)
        assert mock_fireflies_client.fetch_one.await_count == 0

    async def test_unparsable_date_defaults_to_now(self, store, mock_fireflies_client):
        coordinator = SyncCoordinator(store, mock_fireflies_client)

        result = await coordinator.save_meeting({"external_id": "ff-9", "meeting_date": "not a date"})

        stored = await store.find_by_internal_id(result.internal_id)
        assert stored.meeting_date is not None

    async def test_iso_date_and_fractional_duration(self, store, mock_fireflies_client):
        coordinator = SyncCoordinator(store, mock_fireflies_client)

        result = await coordinator.save_meeting({
            "external_id": "ff-9",
            "meeting_date": "2024-03-01T10:00:00Z",
            "duration_seconds": 125.7,
            "transcript_json": "[]",
            "summary": "s",
        })

        stored = await store.find_by_internal_id(result.internal_id)
        assert stored.meeting_date == datetime(2024, 3, 1, 10, 0, tzinfo=UTC)
        assert stored.duration_seconds == 126

    async def test_twice_keeps_identity(self, store, mock_fireflies_client):
        coordinator = SyncCoordinator(store, mock_fireflies_client)

        first = await coordinator.save_meeting({"external_id": "ff-9", "title": "One"})
        second = await coordinator.save_meeting({"external_id": "ff-9", "title": "Two"})

        assert first == second
        stored = await store.find_by_internal_id(first.internal_id)
        assert stored.title == "Two"
        assert len(await store.list_meetings()) == 1

    @pytest.mark.parametrize("external_id", [None, "", "  "])
    async def test_blank_external_id_rejected_before_store(self, mock_store, mock_fireflies_client, external_id):
        coordinator = SyncCoordinator(mock_store, mock_fireflies_client)

        with pytest.raises(ValidationFailedError):
            await coordinator.save_meeting({"external_id": external_id, "title": "x"})
        mock_store.upsert_by_external_id.assert_not_awaited()

    async def test_persistence_errors_surface(self, mock_store, mock_fireflies_client):
        mock_store.upsert_by_external_id = AsyncMock(side_effect=PersistenceConstraintError("dup"))
        coordinator = SyncCoordinator(mock_store, mock_fireflies_client)

        with pytest.raises(PersistenceConstraintError):
            await coordinator.save_meeting({"external_id": "ff-9"})
