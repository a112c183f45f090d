"""Organizer style resolution against configured sources."""
from typing import Iterable, Optional, Sequence

from processor.models import OrganizerStyle, SourceConfig
from storage.source_registry import url_hostname

NEUTRAL_STYLE = OrganizerStyle(
    background_class='bg-slate-50',
    text_class='text-slate-700',
    border_class='border-slate-200',
    accent_class='bg-slate-600'
)


def _tailwind_style(hue: str) -> OrganizerStyle:
    return OrganizerStyle(
        background_class=f'bg-{hue}-50',
        text_class=f'text-{hue}-700',
        border_class=f'border-{hue}-200',
        accent_class=f'bg-{hue}-600'
    )


# First three match the built-in venues in DEFAULT_SOURCES order.
DEFAULT_PALETTE = tuple(
    _tailwind_style(hue)
    for hue in ('purple', 'blue', 'amber', 'emerald', 'rose', 'cyan', 'indigo', 'lime')
)


def organizer_hash(text: str) -> int:
    """
    32-bit signed polynomial hash (h = h * 31 + c) seeded at 0.

    Iterates UTF-16 code units so the result matches a browser's
    String.charCodeAt based hash for the same string.
    """
    encoded = text.encode('utf-16-le')
    value = 0
    for i in range(0, len(encoded), 2):
        code_unit = encoded[i] | (encoded[i + 1] << 8)
        value = (value * 31 + code_unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return value


class OrganizerStyleResolver:
    """
    Maps free-text organizer names to a palette entry.

    Matching runs in order and the first hit wins:

    1. organizer equals a source id (case-insensitive)
    2. organizer contains a source id
    3. event URL hostname equals, contains or is contained in a source hostname
    4. organizer contains or is contained in a source hostname
    5. hash of the lowercased organizer modulo the palette length

    Matches in steps 1-4 select the palette entry at the source's position,
    wrapping when there are more sources than palette entries. An empty
    organizer skips the text-based steps and falls through to the URL and
    hash steps.
    """

    def __init__(self, palette: Sequence[OrganizerStyle] = DEFAULT_PALETTE):
        self.palette = tuple(palette)

    def resolve(
        self,
        organizer: str,
        event_url: Optional[str],
        registry: Iterable[SourceConfig]
    ) -> OrganizerStyle:
        if not self.palette:
            return NEUTRAL_STYLE

        sources = list(registry)
        org_lower = (organizer or '').lower()

        index = self._match_index(org_lower, event_url, sources)
        if index is None:
            index = abs(organizer_hash(org_lower))
        return self.palette[index % len(self.palette)]

    def _match_index(
        self,
        org_lower: str,
        event_url: Optional[str],
        sources: Sequence[SourceConfig]
    ) -> Optional[int]:
        if org_lower:
            for i, source in enumerate(sources):
                if source.id.lower() == org_lower:
                    return i

            for i, source in enumerate(sources):
                source_id = source.id.lower()
                if source_id and source_id in org_lower:
                    return i

        event_host = url_hostname(event_url)
        if event_host:
            for i, source in enumerate(sources):
                source_host = url_hostname(source.url)
                if source_host and (
                    source_host == event_host
                    or source_host in event_host
                    or event_host in source_host
                ):
                    return i

        if org_lower:
            for i, source in enumerate(sources):
                source_host = url_hostname(source.url)
                if source_host and (source_host in org_lower or org_lower in source_host):
                    return i

        return None
