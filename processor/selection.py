"""Tracks which events the user has picked for export."""
import logging
from typing import FrozenSet, Iterable

logger = logging.getLogger(__name__)


class SelectionStateManager:
    """Set of selected event ids, pruned whenever the event set is replaced."""

    def __init__(self):
        self._selected = set()

    def __contains__(self, event_id: str) -> bool:
        return event_id in self._selected

    def __len__(self) -> int:
        return len(self._selected)

    @property
    def selected_ids(self) -> FrozenSet[str]:
        return frozenset(self._selected)

    def is_selected(self, event_id: str) -> bool:
        return event_id in self._selected

    def toggle(self, event_id: str) -> bool:
        """
        Flip membership of event_id.

        Ids without a live event are accepted; the next reconcile drops them.

        Returns:
            True if the id is selected after the call
        """
        if event_id in self._selected:
            self._selected.discard(event_id)
            return False
        self._selected.add(event_id)
        return True

    def reconcile(self, live_ids: Iterable[str]) -> None:
        """Keep only the selected ids that are still live."""
        before = len(self._selected)
        self._selected &= set(live_ids)
        dropped = before - len(self._selected)
        if dropped:
            logger.info(f"Dropped {dropped} selected events no longer present")

    def clear(self) -> None:
        self._selected.clear()
