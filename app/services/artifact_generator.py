"""
Service for generating artifact drafts from a meeting summary using AI.
"""
import httpx
from typing import List, Optional

from app.exceptions import UpstreamUnavailableError
from app.logging_config import get_logger
from app.monitoring import record_upstream_request
from app.rate_limiters import RateLimiters, rate_limiters

logger = get_logger(__name__)


SYSTEM_PROMPT = (
    "You are a helpful assistant that turns meeting summaries into "
    "functional docs, mockups, and markdown."
)

# (kind, instruction), in draft order
DOCUMENT_PROMPTS = (
    (
        "functional_doc",
        "Write a functional document for the work discussed in this meeting. "
        "Cover goals, functional requirements, user flows and open questions."
    ),
    (
        "mockups",
        "Describe the UI mockups implied by this meeting. For each screen, list "
        "its purpose, layout and the main components."
    ),
    (
        "markdown",
        "Rewrite this meeting summary as a well-structured markdown document with "
        "headings, key decisions and action items."
    ),
)

SUMMARY_INSTRUCTION = "Summarize the following meeting:"


class OpenAIArtifactGenerator:
    """Turns one summary into three ordered drafts via OpenAI chat completions."""

    SERVICE = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        api_url: str = "https://api.openai.com/v1/chat/completions",
        timeout: float = 60.0,
        limiter: Optional[RateLimiters] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize generator with OpenAI API key."""
        self.api_key = api_key
        self.model = model
        self.api_url = api_url
        self.timeout = timeout
        self.limiter = limiter or rate_limiters
        self._transport = transport

    def _create_prompt(self, instruction: str, summary: str) -> str:
        return f"""{instruction}

Here is the meeting summary:

{summary}"""

    async def _complete(self, client: httpx.AsyncClient, kind: str, prompt: str) -> str:
        await self.limiter.acquire_openai_limit()

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt}
            ],
            "temperature": 0.3,
        }

        try:
            response = await client.post(self.api_url, json=payload)
            response.raise_for_status()
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except httpx.HTTPStatusError as e:
            record_upstream_request(self.SERVICE, kind, "error")
            logger.error(
                "openai_http_error",
                kind=kind,
                status_code=e.response.status_code,
                detail=e.response.text[:500]
            )
            raise UpstreamUnavailableError(
                f"OpenAI returned {e.response.status_code}: {e.response.text}",
                status_code=e.response.status_code,
                service=self.SERVICE
            ) from e
        except httpx.RequestError as e:
            record_upstream_request(self.SERVICE, kind, "error")
            logger.error("openai_request_failed", kind=kind, error=str(e))
            raise UpstreamUnavailableError(
                f"Error contacting OpenAI: {str(e)}",
                service=self.SERVICE
            ) from e
        except (ValueError, KeyError, IndexError, TypeError) as e:
            record_upstream_request(self.SERVICE, kind, "error")
            raise UpstreamUnavailableError(
                f"Unexpected OpenAI response: {str(e)}",
                status_code=response.status_code,
                service=self.SERVICE
            ) from e

        record_upstream_request(self.SERVICE, kind, "ok")
        return content or ""

    def _client(self) -> httpx.AsyncClient:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        return httpx.AsyncClient(timeout=self.timeout, headers=headers, transport=self._transport)

    async def generate(self, summary: str) -> List[str]:
        """
        Generate the functional document, mockup description and markdown.

        Args:
            summary: Meeting summary text

        Returns:
            Three draft texts, in that order

        Raises:
            UpstreamUnavailableError: If any OpenAI call fails
        """
        drafts: List[str] = []
        async with self._client() as client:
            for kind, instruction in DOCUMENT_PROMPTS:
                drafts.append(await self._complete(client, kind, self._create_prompt(instruction, summary)))

        logger.info("artifact_drafts_generated", model=self.model, count=len(drafts))
        return drafts

    async def summarize(self, text: str) -> str:
        """Condense a stored meeting summary with one chat-completions call."""
        async with self._client() as client:
            summary = await self._complete(client, "summary", f"{SUMMARY_INSTRUCTION}\n{text}")

        logger.info("meeting_summary_generated", model=self.model, length=len(summary))
        return summary
