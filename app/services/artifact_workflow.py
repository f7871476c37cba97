"""
Generation and persistence of the documents derived from a meeting summary.
"""
from typing import Any, Awaitable, Dict, List, Mapping, Optional, Protocol, Sequence

from app.exceptions import (
    ConfigurationError,
    NotFoundError,
    UpstreamUnavailableError,
    ValidationFailedError,
)
from app.logging_config import get_logger
from app.monitoring import artifact_saves_total
from app.services.artifact_slots import ARTIFACT_NAMES, SlotMatcher, match_artifact_slot
from app.services.meeting_store import MeetingStore

logger = get_logger(__name__)


class ArtifactGenerator(Protocol):
    def generate(self, summary: str) -> Awaitable[List[str]]:
        ...

    def summarize(self, text: str) -> Awaitable[str]:
        ...


class ArtifactWorkflow:
    """Drives generation-from-summary and saving of edited drafts."""

    def __init__(
        self,
        store: MeetingStore,
        generator: Optional[ArtifactGenerator] = None,
        matcher: SlotMatcher = match_artifact_slot,
    ):
        self.store = store
        self.generator = generator
        self.matcher = matcher

    async def generate(self, summary: str) -> List[Dict[str, str]]:
        """
        Produce the three drafts for a summary.

        Returns:
            ``[{name, content}]`` for FunctionalDoc.txt, Mockups.txt, Markdown.md
        """
        if not summary or not summary.strip():
            raise ValidationFailedError("summary is required")
        if self.generator is None:
            raise ConfigurationError("OpenAI is not configured; set OPENAI_API_KEY")

        drafts = list(await self.generator.generate(summary))
        if len(drafts) != len(ARTIFACT_NAMES):
            raise UpstreamUnavailableError(
                f"Expected {len(ARTIFACT_NAMES)} drafts from the generator, got {len(drafts)}"
            )
        return [
            {"name": name, "content": content or ""}
            for name, content in zip(ARTIFACT_NAMES, drafts)
        ]

    async def generate_for_meeting(self, internal_id: int) -> List[Dict[str, str]]:
        """Generate drafts from the stored summary of a meeting."""
        record = await self.store.find_by_internal_id(internal_id)
        if record is None:
            raise NotFoundError(f"Meeting {internal_id} not found")

        text = f"Meeting Title: {record.title}\nDate: {record.meeting_date}\n\nSummary:\n{record.summary}"
        return await self.generate(text)

    async def summarize_meeting(self, internal_id: int) -> str:
        """
        Ask the generator for a fresh summary of a stored meeting.

        The stored summary is not modified.

        Raises:
            NotFoundError: No record with this internal id
            ConfigurationError: OpenAI is not configured
        """
        record = await self.store.find_by_internal_id(internal_id)
        if record is None:
            raise NotFoundError(f"Meeting {internal_id} not found")
        if self.generator is None:
            raise ConfigurationError("OpenAI is not configured; set OPENAI_API_KEY")

        return await self.generator.summarize(record.summary or "")

    async def save(self, internal_id: int, files: Sequence[Mapping[str, Any]]) -> Dict[str, str]:
        """
        Attach edited drafts to an existing meeting.

        Matched names go into their slots; the full submitted set is always
        kept as a snapshot.

        Raises:
            NotFoundError: No record with this internal id
        """
        record = await self.store.find_by_internal_id(internal_id)
        if record is None:
            artifact_saves_total.labels(status="not_found").inc()
            raise NotFoundError(f"Meeting {internal_id} not found")

        matched = await self.store.attach_artifacts(internal_id, files, matcher=self.matcher)
        unmatched = [f.get("name") for f in files if f.get("name") not in matched]
        if unmatched:
            logger.info("artifact_names_unmatched", internal_id=internal_id, names=unmatched)

        artifact_saves_total.labels(status="ok").inc()
        return matched
