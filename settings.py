"""Environment-driven configuration."""
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from storage.dynamodb_source_store import DynamoDBSourceStore
from storage.source_store import JsonFileSourceStore, SourceStore


@dataclass
class Settings:
    """Runtime settings, read from environment variables."""
    gemini_api_key: Optional[str] = None
    gemini_model: str = 'gemini-2.5-flash'
    log_level: str = 'INFO'
    timeout_seconds: int = 30
    max_retries: int = 3
    lookahead_months: int = 3
    event_id_strategy: str = 'content'
    sources_table_name: Optional[str] = None
    sources_key: str = 'leipzig_calendar_sources_v1'
    sources_file: str = '/tmp/calendar_sources.json'

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """
        Read settings from the environment.

        Raises:
            ValueError: If a numeric variable is not an integer
        """
        env = os.environ if environ is None else environ
        return cls(
            gemini_api_key=env.get('GEMINI_API_KEY') or env.get('API_KEY'),
            gemini_model=env.get('GEMINI_MODEL', 'gemini-2.5-flash'),
            log_level=env.get('LOG_LEVEL', 'INFO'),
            timeout_seconds=int(env.get('TIMEOUT_SECONDS', '30')),
            max_retries=int(env.get('MAX_RETRIES', '3')),
            lookahead_months=int(env.get('LOOKAHEAD_MONTHS', '3')),
            event_id_strategy=env.get('EVENT_ID_STRATEGY', 'content'),
            sources_table_name=env.get('SOURCES_TABLE_NAME') or None,
            sources_key=env.get('SOURCES_KEY', 'leipzig_calendar_sources_v1'),
            sources_file=env.get('SOURCES_FILE', '/tmp/calendar_sources.json')
        )

    def create_store(self) -> SourceStore:
        """DynamoDB when SOURCES_TABLE_NAME is set, otherwise a local JSON file."""
        if self.sources_table_name:
            return DynamoDBSourceStore(self.sources_table_name, self.sources_key)
        return JsonFileSourceStore(self.sources_file)
