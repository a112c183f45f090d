"""Registry of user-configured event sources."""
import json
import logging
import secrets
import string
from typing import Iterator, List, Optional
from urllib.parse import urlparse

from processor.errors import PersistenceError, ValidationError
from processor.models import SourceConfig
from storage.source_store import SourceStore

logger = logging.getLogger(__name__)

DEFAULT_SOURCES = (
    SourceConfig(id='eumeniden', url='https://theatereumeniden.de/spielplan/', active=True),
    SourceConfig(id='gewandhaus', url='https://www.gewandhausorchester.de/', active=True),
    SourceConfig(id='anker', url='https://anker-leipzig.de/va/veranstaltungen/', active=True),
)

ID_ALPHABET = string.ascii_lowercase + string.digits
ID_LENGTH = 9


def is_valid_url(url: str) -> bool:
    """Return True if url is an absolute URL with a scheme and host."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return bool(parsed.scheme and parsed.netloc)


def url_hostname(url: Optional[str]) -> Optional[str]:
    """Lowercased hostname of url, or None if it does not parse."""
    if not url:
        return None
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


class SourceRegistry:
    """
    Ordered set of event sources with load-once / save-on-mutate persistence.

    The registry loads from its store when constructed and writes the full
    list back after every mutation. Storage failures never reach the caller:
    a failed load falls back to DEFAULT_SOURCES, a failed save is logged.
    """

    def __init__(self, store: SourceStore, defaults=DEFAULT_SOURCES):
        self.store = store
        self._defaults = defaults
        self._sources: List[SourceConfig] = self._load()

    def __iter__(self) -> Iterator[SourceConfig]:
        return iter(list(self._sources))

    def __len__(self) -> int:
        return len(self._sources)

    def list(self) -> List[SourceConfig]:
        """Snapshot of the sources in insertion order."""
        return list(self._sources)

    def get(self, source_id: str) -> Optional[SourceConfig]:
        for source in self._sources:
            if source.id == source_id:
                return source
        return None

    def find_by_hostname(self, hostname: str) -> Optional[SourceConfig]:
        """First source whose URL hostname equals hostname (case-insensitive)."""
        hostname = hostname.lower()
        for source in self._sources:
            if url_hostname(source.url) == hostname:
                return source
        return None

    def active_urls(self) -> List[str]:
        return [source.url for source in self._sources if source.active]

    def add(self, url: str) -> SourceConfig:
        """
        Append a new active source.

        Args:
            url: Absolute URL of the venue website

        Returns:
            The created SourceConfig

        Raises:
            ValidationError: If url is malformed or already configured
        """
        url = (url or '').strip()
        if not is_valid_url(url):
            raise ValidationError(
                'Please enter a valid URL (e.g., https://example.com)'
            )

        if any(source.url.lower() == url.lower() for source in self._sources):
            raise ValidationError('This source is already in your list')

        source = SourceConfig(id=self._new_id(), url=url, active=True)
        self._sources.append(source)
        logger.info(f"Added source {source.id}: {url}")
        self._save()
        return source

    def toggle(self, source_id: str) -> None:
        source = self.get(source_id)
        if source is None:
            return
        source.active = not source.active
        logger.info(f"Source {source_id} active={source.active}")
        self._save()

    def remove(self, source_id: str) -> None:
        source = self.get(source_id)
        if source is None:
            return
        self._sources.remove(source)
        logger.info(f"Removed source {source_id}")
        self._save()

    def _new_id(self) -> str:
        existing = {source.id for source in self._sources}
        while True:
            candidate = ''.join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))
            if candidate not in existing:
                return candidate

    def _default_sources(self) -> List[SourceConfig]:
        return [
            SourceConfig(id=s.id, url=s.url, active=s.active)
            for s in self._defaults
        ]

    def _load(self) -> List[SourceConfig]:
        try:
            payload = self.store.load()
        except PersistenceError as e:
            logger.warning(f"Failed to load sources, using defaults: {e}")
            return self._default_sources()

        if payload is None:
            return self._default_sources()

        try:
            sources = [SourceConfig.from_dict(item) for item in json.loads(payload)]
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Saved sources are unreadable, using defaults: {e}")
            return self._default_sources()

        logger.info(f"Loaded {len(sources)} sources")
        return sources

    def _save(self) -> None:
        payload = json.dumps([source.to_dict() for source in self._sources])
        try:
            self.store.save(payload)
        except PersistenceError as e:
            logger.warning(f"Failed to save sources: {e}")
