"""Event search over venue websites using Gemini with Google Search grounding."""
import json
import logging
import time
from typing import Any, Dict, List, Optional

import requests

from processor.errors import FetchError
from processor.models import FetchEventsResponse, GroundingSource

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = """
Search the following cultural venue websites for upcoming events in the next {months} months:
{url_list}

For each event found, extract:
- Title of the performance/event
- Date in YYYY-MM-DD format
- Start time (if available, else leave blank or guess common times like 19:30 or 20:00)
- Location (The specific hall or venue name)
- Organizer (The name of the venue or organizer associated with the URL)
- URL (The direct link to the event page or the venue's main schedule page where you found it)

Respond with only a valid JSON array of objects with the keys
"title", "date", "time", "location", "organizer" and "url".
"""


class GeminiEventSearchClient:
    """Asks Gemini to find and extract events from a list of venue URLs."""

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-2.5-flash",
        timeout: int = 30,
        max_retries: int = 3,
        lookahead_months: int = 3
    ):
        """
        Initialize the event search client.

        Args:
            api_key: Gemini API key
            model: Gemini model name
            timeout: HTTP request timeout in seconds (default: 30)
            max_retries: Attempts per search before giving up (default: 3)
            lookahead_months: How far ahead to ask for events (default: 3)
        """
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries
        self.lookahead_months = lookahead_months

    def fetch_events(self, urls: List[str]) -> FetchEventsResponse:
        """
        Search the given venue websites for events.

        Args:
            urls: Active source URLs, in display order

        Returns:
            FetchEventsResponse with raw event records and grounding sources

        Raises:
            FetchError: If the API key is missing, the request fails after
                retries, or the response cannot be parsed
        """
        if not urls:
            return FetchEventsResponse(events=[], sources=[])

        if not self.api_key:
            raise FetchError("Gemini API key is not configured")

        logger.info(f"Searching {len(urls)} venue websites for events")

        payload = self._post_generate_content(self.build_prompt(urls))
        response = self._parse_response(payload)

        logger.info(
            f"Event search returned {len(response.events)} events and "
            f"{len(response.sources)} grounding sources"
        )
        return response

    def build_prompt(self, urls: List[str]) -> str:
        url_list = '\n'.join(f"{i + 1}. {url}" for i, url in enumerate(urls))
        return PROMPT_TEMPLATE.format(months=self.lookahead_months, url_list=url_list)

    def _post_generate_content(self, prompt: str) -> Dict[str, Any]:
        """
        Call generateContent with retry logic.

        Raises:
            FetchError: If all retry attempts fail or the body is not JSON
        """
        url = f"{self.BASE_URL}/{self.model}:generateContent"
        headers = {
            'x-goog-api-key': self.api_key,
            'Content-Type': 'application/json'
        }
        body = {
            'contents': [{'role': 'user', 'parts': [{'text': prompt}]}],
            'tools': [{'google_search': {}}],
        }

        base_delay = 1  # seconds

        for attempt in range(self.max_retries):
            try:
                logger.info(
                    f"Calling Gemini {self.model} "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                response = requests.post(
                    url,
                    headers=headers,
                    json=body,
                    timeout=self.timeout
                )
                response.raise_for_status()
                break

            except requests.RequestException as e:
                if attempt < self.max_retries - 1:
                    delay = base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.max_retries} retry attempts failed. Last error: {e}"
                    )
                    raise FetchError(f"Gemini request failed: {e}") from e
        else:
            raise FetchError("Gemini request was not attempted (max_retries < 1)")

        try:
            return response.json()
        except ValueError as e:
            raise FetchError(f"Gemini returned a non-JSON body: {e}") from e

    def _parse_response(self, payload: Dict[str, Any]) -> FetchEventsResponse:
        if not isinstance(payload, dict):
            raise FetchError("Gemini response body is not an object")

        candidates = payload.get('candidates') or []
        if not candidates:
            raise FetchError("Gemini returned no candidates")

        if not isinstance(candidates, list) or not isinstance(candidates[0], dict):
            raise FetchError("Gemini candidate is not an object")

        candidate = candidates[0]
        content = candidate.get('content')
        parts = content.get('parts') if isinstance(content, dict) else None
        if not isinstance(parts, list):
            parts = []
        text = ''.join(
            part['text'] for part in parts
            if isinstance(part, dict) and isinstance(part.get('text'), str)
        )

        events = self._parse_events_json(text)
        sources = self._parse_grounding_sources(candidate)
        return FetchEventsResponse(events=events, sources=sources)

    def _parse_events_json(self, text: str) -> List[dict]:
        """
        Decode the model's JSON answer.

        Accepts a bare array, an array inside a Markdown code fence, or an
        object with an "events" array.

        Raises:
            FetchError: If no JSON array can be decoded
        """
        text = text.strip()
        if text.startswith('```'):
            text = text.split('\n', 1)[1] if '\n' in text else ''
            if text.rstrip().endswith('```'):
                text = text.rstrip()[:-3]
            text = text.strip()

        try:
            data = json.loads(text)
        except ValueError as e:
            raise FetchError(f"Gemini response is not valid JSON: {e}") from e

        if isinstance(data, dict):
            data = data.get('events')

        if not isinstance(data, list):
            raise FetchError("Gemini response is not a JSON array of events")

        return data

    def _parse_grounding_sources(self, candidate: Dict[str, Any]) -> List[GroundingSource]:
        metadata = candidate.get('groundingMetadata')
        chunks = metadata.get('groundingChunks') if isinstance(metadata, dict) else None
        if not isinstance(chunks, list):
            return []

        sources = []
        for chunk in chunks:
            web = chunk.get('web') if isinstance(chunk, dict) else None
            if not isinstance(web, dict):
                continue
            sources.append(GroundingSource(title=web.get('title'), uri=web.get('uri')))
        return sources
