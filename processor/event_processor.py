"""Event processor for normalizing AI-extracted event records."""
import hashlib
import logging
import time
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Callable, List, Optional

from bs4 import BeautifulSoup

from processor.models import CalendarEvent

logger = logging.getLogger(__name__)

ID_STRATEGIES = ('content', 'batch')


class EventProcessor:
    """Turns raw event search records into canonical CalendarEvents."""

    MAX_TITLE_LENGTH = 200
    MAX_DESCRIPTION_LENGTH = 2000

    def __init__(
        self,
        id_strategy: str = 'content',
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize the processor.

        Args:
            id_strategy: 'content' for ids hashed from organizer, title, date
                and time (stable across refreshes) or 'batch' for
                organizer-index-timestamp ids (unique within one batch only)
            clock: Returns seconds since the epoch; used by 'batch' ids
        """
        if id_strategy not in ID_STRATEGIES:
            raise ValueError(
                f"Unknown id strategy '{id_strategy}', "
                f"expected one of {', '.join(ID_STRATEGIES)}"
            )
        self.id_strategy = id_strategy
        self.clock = clock

    def ingest(self, raw_events: List[Any]) -> List[CalendarEvent]:
        """
        Normalize a batch of raw event records.

        Records that lack a title or a usable date are skipped; one bad
        record never aborts the batch.

        Args:
            raw_events: Loosely-typed records (dicts) from the event search

        Returns:
            List of CalendarEvent objects with ids unique within the batch
        """
        batch_millis = int(self.clock() * 1000)
        seen_ids = set()
        events = []

        for index, raw in enumerate(raw_events):
            try:
                event = self._process_single_event(raw, index, batch_millis)
            except Exception as e:
                logger.warning(f"Failed to process event record {index}: {e}")
                continue

            if event is None:
                continue

            event.id = self._dedupe_id(event.id, seen_ids)
            seen_ids.add(event.id)
            events.append(event)

        logger.info(
            f"Ingested {len(events)} valid events out of "
            f"{len(raw_events)} raw records"
        )
        return events

    def _process_single_event(
        self,
        raw: Any,
        index: int,
        batch_millis: int
    ) -> Optional[CalendarEvent]:
        if not isinstance(raw, Mapping):
            logger.warning(f"Skipping event record {index}: not an object")
            return None

        title = self._clean_text(raw.get('title'))
        if not title:
            logger.warning(f"Event record {index} missing required field: title")
            return None

        raw_date = self._as_text(raw.get('date'))
        if not raw_date:
            logger.warning(f"Event '{title}' missing required field: date")
            return None

        normalized_date = self._normalize_date(raw_date)
        if not normalized_date:
            logger.warning(f"Invalid date format for event '{title}': {raw_date}")
            return None

        normalized_time = ''
        raw_time = self._as_text(raw.get('time'))
        if raw_time:
            normalized_time = self._normalize_time(raw_time) or ''
            if not normalized_time:
                logger.warning(
                    f"Unrecognized time for event '{title}': {raw_time}, "
                    f"leaving it unset"
                )

        organizer = self._clean_text(raw.get('organizer'))
        description = self._clean_text(raw.get('description'))

        title = title[:self.MAX_TITLE_LENGTH]
        description = description[:self.MAX_DESCRIPTION_LENGTH]

        if self.id_strategy == 'batch':
            event_id = f"{organizer}-{index}-{batch_millis}"
        else:
            event_id = self.generate_event_id(
                organizer=organizer,
                title=title,
                date=normalized_date,
                time=normalized_time
            )

        return CalendarEvent(
            id=event_id,
            title=title,
            date=normalized_date,
            time=normalized_time,
            location=self._clean_text(raw.get('location')),
            organizer=organizer,
            url=self._as_text(raw.get('url')) or None,
            description=description or None
        )

    @staticmethod
    def _as_text(value: Any) -> str:
        if value is None:
            return ''
        return str(value).strip()

    def _clean_text(self, value: Any) -> str:
        """Strip surrounding whitespace and any HTML markup or entities."""
        text = self._as_text(value)
        if '<' not in text and '&' not in text:
            return text
        return BeautifulSoup(text, 'html.parser').get_text(' ', strip=True)

    def _dedupe_id(self, event_id: str, seen_ids: set) -> str:
        if event_id not in seen_ids:
            return event_id
        suffix = 2
        while f"{event_id}-{suffix}" in seen_ids:
            suffix += 1
        return f"{event_id}-{suffix}"

    def _normalize_date(self, date_str: str) -> Optional[str]:
        """
        Normalize date to ISO 8601 format (YYYY-MM-DD).

        Args:
            date_str: Date string in various formats

        Returns:
            ISO 8601 formatted date string or None if parsing fails
        """
        date_formats = [
            '%Y-%m-%d',      # ISO 8601
            '%d.%m.%Y',      # German format
            '%m/%d/%Y',      # US format
            '%B %d, %Y',     # Full month name
            '%b %d, %Y',     # Abbreviated month name
            '%d %B %Y',      # Day first, full month name
            '%Y/%m/%d',      # Alternative ISO format
        ]

        date_str = date_str.strip()

        # Tolerate full ISO timestamps
        if len(date_str) > 10 and date_str[4] == '-' and date_str[10] in 'T ':
            date_str = date_str[:10]

        for fmt in date_formats:
            try:
                date_obj = datetime.strptime(date_str, fmt)
                return date_obj.strftime('%Y-%m-%d')
            except ValueError:
                continue

        return None

    def _normalize_time(self, time_str: str) -> Optional[str]:
        """
        Normalize time to 24-hour format (HH:MM).

        Args:
            time_str: Time string in various formats

        Returns:
            24-hour formatted time string or None if parsing fails
        """
        time_formats = [
            '%H:%M',         # 24-hour format
            '%H.%M',         # German dotted format
            '%I:%M %p',      # 12-hour format with AM/PM
            '%I:%M%p',       # 12-hour format without space
            '%H:%M:%S',      # 24-hour with seconds
            '%I:%M:%S %p',   # 12-hour with seconds and AM/PM
        ]

        time_str = time_str.strip()
        if time_str.lower().endswith(' uhr'):
            time_str = time_str[:-4].strip()

        for fmt in time_formats:
            try:
                time_obj = datetime.strptime(time_str, fmt)
                return time_obj.strftime('%H:%M')
            except ValueError:
                continue

        return None

    def generate_event_id(self, organizer: str, title: str, date: str, time: str) -> str:
        """
        Generate a content-derived identifier for an event.

        The same organizer, title, date and time always produce the same id,
        so an event keeps its id across refreshes.

        Args:
            organizer: Organizer name
            title: Event title
            date: Event date (ISO 8601 format)
            time: Event start time (24-hour format, may be empty)

        Returns:
            SHA256 hex digest
        """
        composite = f"{organizer}|{title}|{date}|{time}".casefold()
        return hashlib.sha256(composite.encode('utf-8')).hexdigest()
