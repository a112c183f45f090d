"""Shared fixtures."""
from typing import Optional

import pytest

from processor.errors import FetchError, PersistenceError
from processor.models import FetchEventsResponse, GroundingSource
from storage.source_store import SourceStore


class InMemorySourceStore(SourceStore):
    """Source store that keeps the payload in memory and counts saves."""

    def __init__(self, payload: Optional[str] = None):
        self.payload = payload
        self.saves = 0

    def load(self) -> Optional[str]:
        return self.payload

    def save(self, payload: str) -> None:
        self.payload = payload
        self.saves += 1


class BrokenSourceStore(SourceStore):
    """Source store whose backend is unavailable."""

    def load(self) -> Optional[str]:
        raise PersistenceError("backend unavailable")

    def save(self, payload: str) -> None:
        raise PersistenceError("backend unavailable")


class FakeEventSearchClient:
    """Event search client returning queued results."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def fetch_events(self, urls):
        self.calls.append(list(urls))
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def memory_store():
    return InMemorySourceStore()


@pytest.fixture
def broken_store():
    return BrokenSourceStore()


@pytest.fixture
def raw_events():
    """Raw records as returned by the event search."""
    return [
        {
            'title': 'Mahler Symphony No. 5',
            'date': '2024-03-15',
            'time': '20:00',
            'location': 'Großer Saal',
            'organizer': 'Gewandhausorchester',
            'url': 'https://www.gewandhausorchester.de/konzert/mahler-5'
        },
        {
            'title': 'Die Möwe',
            'date': '2024-03-16',
            'time': '19:30',
            'location': 'Theater Eumeniden',
            'organizer': 'Theater Eumeniden',
            'url': 'https://theatereumeniden.de/spielplan/moewe'
        }
    ]


@pytest.fixture
def fetch_response(raw_events):
    return FetchEventsResponse(
        events=raw_events,
        sources=[
            GroundingSource(title='gewandhausorchester.de', uri='https://www.gewandhausorchester.de/'),
        ]
    )


@pytest.fixture
def fetch_error():
    return FetchError("Gemini request failed: 503 Server Error")


@pytest.fixture
def make_client():
    """Factory for FakeEventSearchClient."""
    return FakeEventSearchClient
