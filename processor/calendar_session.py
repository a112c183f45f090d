"""Calendar session: sources, fetched events, selection and export."""
import logging
from datetime import date
from typing import List, Optional

from processor.errors import FetchError
from processor.event_processor import EventProcessor
from processor.ics_encoder import CalendarExportEncoder
from processor.models import (
    CalendarEvent,
    ExportFile,
    FetchEventsResponse,
    GroundingSource,
    OrganizerStyle,
    SourceConfig,
)
from processor.organizer_styles import OrganizerStyleResolver
from processor.selection import SelectionStateManager
from storage.source_registry import SourceRegistry

logger = logging.getLogger(__name__)


class CalendarSession:
    """
    Owns the state behind one calendar view.

    Every refresh carries a generation number. Only the newest generation
    may replace the event set, so a slow response from a superseded fetch
    is discarded instead of overwriting newer data. Replacing the events
    and reconciling the selection happen together in complete_refresh.
    """

    FETCH_ERROR_MESSAGE = (
        'Failed to synchronize events. Please check your connection or API key.'
    )

    def __init__(
        self,
        registry: SourceRegistry,
        client,
        processor: Optional[EventProcessor] = None,
        resolver: Optional[OrganizerStyleResolver] = None,
        encoder: Optional[CalendarExportEncoder] = None,
        refresh_on_source_change: bool = False
    ):
        """
        Args:
            registry: Configured event sources
            client: Event search client exposing fetch_events(urls)
            processor: Ingestion of raw records (default EventProcessor())
            resolver: Organizer style resolution
            encoder: iCalendar export
            refresh_on_source_change: Refresh after every source mutation
        """
        self.registry = registry
        self.client = client
        self.processor = processor or EventProcessor()
        self.resolver = resolver or OrganizerStyleResolver()
        self.encoder = encoder or CalendarExportEncoder()
        self.refresh_on_source_change = refresh_on_source_change

        self.events: List[CalendarEvent] = []
        self.grounding_sources: List[GroundingSource] = []
        self.selection = SelectionStateManager()
        self.is_loading = False
        self.error: Optional[str] = None
        self.generation = 0

    def begin_refresh(self) -> int:
        """Start a refresh cycle and return its generation."""
        self.generation += 1
        self.is_loading = True
        self.error = None
        return self.generation

    def complete_refresh(self, generation: int, response: FetchEventsResponse) -> bool:
        """
        Apply a fetch result if it belongs to the current generation.

        Returns:
            True if the result replaced the event set, False if it was stale
        """
        if generation != self.generation:
            logger.info(
                f"Discarding stale fetch result (generation {generation}, "
                f"current {self.generation})"
            )
            return False

        events = self.processor.ingest(response.events)
        self._replace_events(events, list(response.sources))
        self.is_loading = False
        return True

    def fail_refresh(self, generation: int, exc: Exception) -> bool:
        """
        Record a fetch failure; previous events and selection stay intact.

        Returns:
            True if the failure applied to the current generation
        """
        if generation != self.generation:
            logger.info(f"Ignoring failure of stale fetch (generation {generation})")
            return False

        logger.error(f"Event refresh failed: {exc}")
        self.error = self.FETCH_ERROR_MESSAGE
        self.is_loading = False
        return True

    def refresh(self) -> bool:
        """
        Fetch events for all active sources and replace the event set.

        Returns:
            True on success, False if the fetch failed
        """
        urls = self.registry.active_urls()
        if not urls:
            logger.info("No active sources, clearing events")
            self.generation += 1
            self.is_loading = False
            self.error = None
            self._replace_events([], [])
            return True

        generation = self.begin_refresh()
        logger.info(f"Refreshing events from {len(urls)} sources (generation {generation})")
        try:
            response = self.client.fetch_events(urls)
        except FetchError as e:
            self.fail_refresh(generation, e)
            return False
        finally:
            if generation == self.generation:
                self.is_loading = False

        self.complete_refresh(generation, response)
        return True

    def restore_events(self, events: List[CalendarEvent]) -> None:
        """
        Install a previously fetched event set without calling the client.

        Supersedes any refresh in flight; the selection is reconciled.
        """
        self.generation += 1
        self.is_loading = False
        self.error = None
        self._replace_events(list(events), [])

    def _replace_events(
        self,
        events: List[CalendarEvent],
        sources: List[GroundingSource]
    ) -> None:
        self.events = events
        self.grounding_sources = sources
        self.selection.reconcile(event.id for event in events)
        logger.info(
            f"Event set replaced: {len(events)} events, "
            f"{len(self.selection)} still selected"
        )

    def toggle_selection(self, event_id: str) -> bool:
        return self.selection.toggle(event_id)

    def clear_selection(self) -> None:
        self.selection.clear()

    def selected_events(self) -> List[CalendarEvent]:
        """Selected events in event-set order."""
        return [event for event in self.events if event.id in self.selection]

    def export_selected(self, export_date: Optional[date] = None) -> Optional[ExportFile]:
        """
        Export the selected events as an iCalendar file.

        Returns:
            ExportFile, or None when nothing is selected
        """
        return self.encoder.build_export(self.selected_events(), export_date)

    def style_for(self, event: CalendarEvent) -> OrganizerStyle:
        return self.resolver.resolve(event.organizer, event.url, self.registry)

    def add_source(self, url: str) -> SourceConfig:
        """
        Add a source; ValidationError propagates for inline reporting.
        """
        source = self.registry.add(url)
        self._sources_changed()
        return source

    def toggle_source(self, source_id: str) -> None:
        self.registry.toggle(source_id)
        self._sources_changed()

    def remove_source(self, source_id: str) -> None:
        self.registry.remove(source_id)
        self._sources_changed()

    def _sources_changed(self) -> None:
        if self.refresh_on_source_change:
            self.refresh()
