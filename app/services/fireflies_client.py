"""
Client for the Fireflies GraphQL API (upstream transcript service).
"""
import httpx
from typing import Any, Dict, List, Optional

from app.exceptions import NotFoundError, UpstreamUnavailableError
from app.logging_config import get_logger
from app.monitoring import record_upstream_request
from app.rate_limiters import RateLimiters, rate_limiters

logger = get_logger(__name__)


TRANSCRIPTS_QUERY = """query Transcripts($limit: Int) {
  transcripts(limit: $limit) {
    id title date duration
    summary { overview short_summary }
  }
}"""

TRANSCRIPT_QUERY = """query Transcript($id: String!) {
  transcript(id: $id) {
    id title date duration
    sentences { index text start_time end_time speaker_name }
    summary { overview short_summary bullet_gist }
  }
}"""


class FirefliesClient:
    """Issues one GraphQL query per call. No caching and no retries."""

    SERVICE = "fireflies"

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://api.fireflies.ai/graphql",
        timeout: float = 30.0,
        limiter: Optional[RateLimiters] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self.limiter = limiter or rate_limiters
        self._transport = transport

    async def _query(self, operation: str, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a GraphQL query and return its ``data`` object.

        Raises:
            UpstreamUnavailableError: transport failure, non-2xx status or GraphQL errors
            NotFoundError: Fireflies reported the object does not exist
        """
        await self.limiter.acquire_fireflies_limit()

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.api_url,
                    headers=headers,
                    json={"query": query, "variables": variables}
                )
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as e:
            record_upstream_request(self.SERVICE, operation, "error")
            logger.error(
                "fireflies_http_error",
                operation=operation,
                status_code=e.response.status_code,
                detail=e.response.text[:500]
            )
            raise UpstreamUnavailableError(
                f"Fireflies returned {e.response.status_code}: {e.response.text}",
                status_code=e.response.status_code,
                service=self.SERVICE
            ) from e
        except httpx.RequestError as e:
            record_upstream_request(self.SERVICE, operation, "error")
            logger.error("fireflies_request_failed", operation=operation, error=str(e))
            raise UpstreamUnavailableError(
                f"Error contacting Fireflies: {str(e)}",
                service=self.SERVICE
            ) from e
        except ValueError as e:
            record_upstream_request(self.SERVICE, operation, "error")
            raise UpstreamUnavailableError(
                f"Fireflies returned a non-JSON body: {str(e)}",
                status_code=response.status_code,
                service=self.SERVICE
            ) from e

        if not isinstance(body, dict):
            record_upstream_request(self.SERVICE, operation, "error")
            logger.error("fireflies_unexpected_body", operation=operation, body_type=type(body).__name__)
            raise UpstreamUnavailableError(
                f"Fireflies returned a {type(body).__name__} instead of a JSON object",
                status_code=response.status_code,
                service=self.SERVICE
            )

        errors = body.get("errors") or []
        if errors:
            codes = {(err.get("extensions") or {}).get("code") for err in errors}
            messages = "; ".join(str(err.get("message", "")) for err in errors)
            if "object_not_found" in codes:
                record_upstream_request(self.SERVICE, operation, "not_found")
                raise NotFoundError(f"Fireflies: {messages}")
            record_upstream_request(self.SERVICE, operation, "error")
            logger.error("fireflies_graphql_error", operation=operation, errors=messages)
            raise UpstreamUnavailableError(
                f"Fireflies GraphQL error: {messages}",
                status_code=response.status_code,
                service=self.SERVICE
            )

        record_upstream_request(self.SERVICE, operation, "ok")
        return body.get("data") or {}

    async def fetch_list(self, limit: int = 25) -> List[Dict[str, Any]]:
        """
        List recent transcripts (summary fields only).

        Args:
            limit: Maximum number of transcripts to return

        Returns:
            List of raw transcript dictionaries
        """
        data = await self._query("transcripts", TRANSCRIPTS_QUERY, {"limit": limit})
        transcripts = data.get("transcripts") or []
        logger.info("fireflies_transcripts_listed", count=len(transcripts), limit=limit)
        return transcripts

    async def fetch_one(self, external_id: str) -> Dict[str, Any]:
        """
        Fetch one transcript with sentences and summary.

        Args:
            external_id: Fireflies transcript id

        Returns:
            Raw transcript dictionary

        Raises:
            NotFoundError: If Fireflies has no such transcript
        """
        data = await self._query("transcript", TRANSCRIPT_QUERY, {"id": external_id})
        transcript = data.get("transcript")
        if not transcript:
            raise NotFoundError(f"Transcript {external_id} not found")

        logger.info("fireflies_transcript_fetched", external_id=external_id)
        return transcript
