"""Unit tests for OrganizerStyleResolver."""
import pytest

from processor.models import OrganizerStyle, SourceConfig
from processor.organizer_styles import (
    DEFAULT_PALETTE,
    NEUTRAL_STYLE,
    OrganizerStyleResolver,
    organizer_hash,
)
from storage.source_registry import DEFAULT_SOURCES

PURPLE, BLUE, AMBER = DEFAULT_PALETTE[:3]


@pytest.fixture
def sources():
    return list(DEFAULT_SOURCES)


@pytest.fixture
def resolver():
    return OrganizerStyleResolver()


class TestOrganizerHash:
    """Test cases for the fallback hash."""

    def test_empty_string(self):
        assert organizer_hash('') == 0

    def test_known_values(self):
        assert organizer_hash('a') == 97
        assert organizer_hash('ab') == 97 * 31 + 98
        assert organizer_hash('hello') == 99162322

    def test_wraps_to_signed_32_bit(self):
        assert organizer_hash('polygenelubricants') == -2147483648

    def test_uses_utf16_code_units(self):
        """Test that astral characters hash as surrogate pairs."""
        assert organizer_hash('\U0001F600') == 0xD83D * 31 + 0xDE00


class TestOrganizerStyleResolver:
    """Test cases for OrganizerStyleResolver class."""

    def test_exact_id_match(self, resolver, sources):
        assert resolver.resolve('Gewandhaus', None, sources) == BLUE
        assert resolver.resolve('ANKER', None, sources) == AMBER

    def test_organizer_contains_id(self, resolver, sources):
        assert resolver.resolve('Theater Eumeniden', None, sources) == PURPLE
        assert resolver.resolve('Gewandhausorchester Leipzig', None, sources) == BLUE
        assert resolver.resolve('Anker Leipzig', None, sources) == AMBER

    def test_event_url_hostname_match(self, resolver, sources):
        """Test matching by event URL when the organizer text is unhelpful."""
        style = resolver.resolve(
            'Großer Saal',
            'https://www.gewandhausorchester.de/konzert/123',
            sources
        )

        assert style == BLUE

    def test_event_url_subdomain_match(self, resolver, sources):
        """Test that an event host containing the source host matches."""
        style = resolver.resolve('Tickets', 'https://tickets.anker-leipzig.de/e/1', sources)

        assert style == AMBER

    def test_id_match_wins_over_url_match(self, resolver, sources):
        style = resolver.resolve('Anker', 'https://www.gewandhausorchester.de/', sources)

        assert style == AMBER

    def test_malformed_event_url_is_ignored(self, resolver, sources):
        style = resolver.resolve('Anker', 'not a url', sources)

        assert style == AMBER

    def test_organizer_matches_source_hostname(self, resolver):
        """Test matching organizer text against source hostnames."""
        sources = [
            SourceConfig(id='k3x9q2m1a', url='https://www.schauspiel-leipzig.de/', active=True),
            SourceConfig(id='p0w8e7r6t', url='https://www.moritzbastei.de/programm', active=True),
        ]

        assert resolver.resolve('moritzbastei.de', None, sources) == DEFAULT_PALETTE[1]
        assert resolver.resolve('Events at www.schauspiel-leipzig.de', None, sources) == PURPLE

    def test_palette_wraps_when_more_sources_than_entries(self):
        """Test that source index wraps modulo the palette length."""
        palette = [PURPLE, BLUE, AMBER]
        resolver = OrganizerStyleResolver(palette)
        sources = [
            SourceConfig(id=f'venue{i}', url=f'https://venue{i}.example.com/', active=True)
            for i in range(10)
        ]

        assert resolver.resolve('venue4', None, sources) == BLUE
        assert resolver.resolve('venue6', None, sources) == PURPLE

    def test_hash_fallback(self, resolver, sources):
        """Test deterministic fallback for organizers with no source match."""
        style = resolver.resolve('Oper Leipzig', None, sources)

        expected = DEFAULT_PALETTE[abs(organizer_hash('oper leipzig')) % len(DEFAULT_PALETTE)]
        assert style == expected

    def test_hash_fallback_is_case_insensitive(self, resolver, sources):
        assert resolver.resolve('OPER LEIPZIG', None, sources) == resolver.resolve('oper leipzig', None, sources)

    def test_hash_fallback_index_in_range(self):
        palette = [PURPLE, BLUE, AMBER]
        resolver = OrganizerStyleResolver(palette)

        for organizer in ['polygenelubricants', 'Oper Leipzig', 'Werk 2', 'naTo', '\U0001F3BB Quartett']:
            assert resolver.resolve(organizer, None, []) in palette

    def test_resolve_is_pure(self, resolver, sources):
        """Test that identical inputs always give identical outputs."""
        args = ('Schauspiel Leipzig', 'https://www.schauspiel-leipzig.de/x', sources)

        assert resolver.resolve(*args) == resolver.resolve(*args)

    def test_empty_palette_returns_neutral(self, sources):
        resolver = OrganizerStyleResolver([])

        assert resolver.resolve('Gewandhaus', None, sources) == NEUTRAL_STYLE

    def test_empty_organizer_skips_text_rules(self, resolver, sources):
        """Test that an empty organizer still matches by URL, else hashes to 0."""
        assert resolver.resolve('', 'https://anker-leipzig.de/va/1', sources) == AMBER
        assert resolver.resolve('', None, sources) == DEFAULT_PALETTE[0]

    def test_accepts_registry(self, resolver, memory_store):
        from storage.source_registry import SourceRegistry

        registry = SourceRegistry(memory_store)

        assert resolver.resolve('gewandhaus', None, registry) == BLUE

    def test_styles_are_descriptors(self):
        assert all(isinstance(style, OrganizerStyle) for style in DEFAULT_PALETTE)
        assert PURPLE.background_class == 'bg-purple-50'
        assert BLUE.accent_class == 'bg-blue-600'
