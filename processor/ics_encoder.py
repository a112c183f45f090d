"""iCalendar export of selected events."""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

from processor.models import CalendarEvent, ExportFile

logger = logging.getLogger(__name__)

DEFAULT_START_TIME = '19:30'
EVENT_DURATION = timedelta(hours=2)
UID_DOMAIN = 'cultural-calendar'
CRLF = '\r\n'


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CalendarExportEncoder:
    """Serializes CalendarEvents into iCalendar text."""

    def __init__(
        self,
        product_id: str = '-//Leipzig Cultural Calendar//EN',
        clock: Callable[[], datetime] = utc_now
    ):
        self.product_id = product_id
        self.clock = clock

    def encode(self, events: Sequence[CalendarEvent]) -> Optional[str]:
        """
        Build a VCALENDAR document with one VEVENT per event.

        Args:
            events: Events to export

        Returns:
            CRLF-joined calendar text, or None when no event could be encoded
        """
        if not events:
            return None

        dtstamp = self.clock().astimezone(timezone.utc).strftime('%Y%m%dT%H%M%SZ')

        lines = [
            'BEGIN:VCALENDAR',
            'VERSION:2.0',
            f'PRODID:{self.product_id}',
            'CALSCALE:GREGORIAN',
            'METHOD:PUBLISH',
        ]

        encoded = 0
        for event in events:
            try:
                lines.extend(self._encode_event(event, dtstamp))
                encoded += 1
            except ValueError as e:
                logger.warning(f"Skipping event '{event.title}' in export: {e}")

        logger.info(f"Encoded {encoded} of {len(events)} events as iCalendar")
        if not encoded:
            return None

        lines.append('END:VCALENDAR')
        return CRLF.join(lines)

    def build_export(
        self,
        events: Sequence[CalendarEvent],
        export_date: Optional[date] = None
    ) -> Optional[ExportFile]:
        """
        Wrap encoded events as a downloadable file.

        Returns:
            ExportFile named selected-events-<date>.ics, or None when events
            is empty
        """
        content = self.encode(events)
        if content is None:
            return None

        export_date = export_date or date.today()
        return ExportFile(
            filename=f"selected-events-{export_date.strftime('%Y-%m-%d')}.ics",
            content=content
        )

    def _encode_event(self, event: CalendarEvent, dtstamp: str) -> List[str]:
        start, end = self.event_times(event)

        lines = [
            'BEGIN:VEVENT',
            f'UID:{event.id}@{UID_DOMAIN}',
            f'DTSTAMP:{dtstamp}',
            f"DTSTART:{start.strftime('%Y%m%dT%H%M%S')}",
            f"DTEND:{end.strftime('%Y%m%dT%H%M%S')}",
            f'SUMMARY:{event.title}',
            f'LOCATION:{event.location}',
            # Literal backslash-n, the iCalendar escape for a line break
            f"DESCRIPTION:Organizer: {event.organizer}\\nURL: {event.url or 'N/A'}",
        ]
        if event.url:
            lines.append(f'URL:{event.url}')
        lines.append('END:VEVENT')
        return lines

    @staticmethod
    def event_times(event: CalendarEvent) -> tuple[datetime, datetime]:
        """
        Floating start and end datetimes for an event.

        Events without a time start at 19:30. The end is always two hours
        after the start and rolls over to the next day for late starts.

        Raises:
            ValueError: If date or time cannot be parsed
        """
        start = datetime.strptime(
            f"{event.date} {event.time or DEFAULT_START_TIME}",
            '%Y-%m-%d %H:%M'
        )
        return start, start + EVENT_DURATION
