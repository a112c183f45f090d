"""
Persistence port for the source configuration.

A store holds a single key-value entry: the JSON-serialized source list.
The registry owns serialization; stores only move the payload.
"""
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from processor.errors import PersistenceError

logger = logging.getLogger(__name__)


class SourceStore(ABC):
    """Abstract key-value entry holding the serialized source list."""

    @abstractmethod
    def load(self) -> Optional[str]:
        """
        Read the stored payload.

        Returns:
            JSON payload, or None when nothing has been saved yet

        Raises:
            PersistenceError: If the backend cannot be read
        """

    @abstractmethod
    def save(self, payload: str) -> None:
        """
        Overwrite the stored payload.

        Raises:
            PersistenceError: If the backend cannot be written
        """


class JsonFileSourceStore(SourceStore):
    """Store backed by a JSON file on local disk."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[str]:
        if not self.path.exists():
            logger.info(f"No saved sources at {self.path}")
            return None

        try:
            return self.path.read_text(encoding='utf-8')
        except OSError as e:
            raise PersistenceError(f"Failed to read {self.path}: {e}") from e

    def save(self, payload: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(payload, encoding='utf-8')
        except OSError as e:
            raise PersistenceError(f"Failed to write {self.path}: {e}") from e
        logger.debug(f"Saved sources to {self.path}")
