"""Data models for the cultural events calendar."""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional


@dataclass
class SourceConfig:
    """Venue website the event search is pointed at."""
    id: str
    url: str
    active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'url': self.url, 'active': self.active}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SourceConfig':
        """
        Build a SourceConfig from its persisted form.

        Raises:
            KeyError: If id or url is missing
            TypeError: If data is not a mapping
        """
        return cls(
            id=str(data['id']),
            url=str(data['url']),
            active=bool(data.get('active', True))
        )


@dataclass
class CalendarEvent:
    """Canonical event produced by ingestion."""
    id: str
    title: str
    date: str
    time: str
    location: str
    organizer: str
    url: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CalendarEvent':
        """
        Rebuild an event from its to_dict() form; extra keys are ignored.

        Raises:
            KeyError: If id, title or date is missing
            TypeError: If data is not a mapping
        """
        return cls(
            id=str(data['id']),
            title=str(data['title']),
            date=str(data['date']),
            time=str(data.get('time') or ''),
            location=str(data.get('location') or ''),
            organizer=str(data.get('organizer') or ''),
            url=data.get('url') or None,
            description=data.get('description') or None
        )


@dataclass(frozen=True)
class OrganizerStyle:
    """Presentation classes assigned to an organizer."""
    background_class: str
    text_class: str
    border_class: str
    accent_class: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass
class GroundingSource:
    """Citation returned alongside AI-generated event data."""
    title: Optional[str] = None
    uri: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {'title': self.title, 'uri': self.uri}


@dataclass
class FetchEventsResponse:
    """Raw result of one event search call."""
    events: list[dict] = field(default_factory=list)
    sources: list[GroundingSource] = field(default_factory=list)


@dataclass
class ExportFile:
    """Calendar file ready for download."""
    filename: str
    content: str
    mime_type: str = 'text/calendar;charset=utf-8'
