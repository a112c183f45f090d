"""Unit tests for source configuration stores."""
import json

import boto3
import pytest
from moto import mock_aws

from processor.errors import PersistenceError
from storage.dynamodb_source_store import DynamoDBSourceStore
from storage.source_registry import SourceRegistry
from storage.source_store import JsonFileSourceStore


@pytest.fixture
def aws_env(monkeypatch):
    """Fake credentials and region for moto."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def sources_table(aws_env):
    """Create a mock DynamoDB table for testing."""
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')

        table = dynamodb.create_table(
            TableName='test-calendar-sources',
            KeySchema=[
                {'AttributeName': 'config_key', 'KeyType': 'HASH'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'config_key', 'AttributeType': 'S'}
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        yield table


@pytest.fixture
def dynamodb_store(sources_table):
    return DynamoDBSourceStore('test-calendar-sources', config_key='test-sources')


class TestJsonFileSourceStore:
    """Test cases for JsonFileSourceStore."""

    def test_load_missing_file_returns_none(self, tmp_path):
        store = JsonFileSourceStore(tmp_path / 'sources.json')

        assert store.load() is None

    def test_save_creates_parent_directories(self, tmp_path):
        path = tmp_path / 'nested' / 'dir' / 'sources.json'
        store = JsonFileSourceStore(path)

        store.save('[]')

        assert path.read_text(encoding='utf-8') == '[]'
        assert store.load() == '[]'

    def test_unreadable_path_raises_persistence_error(self, tmp_path):
        """Test that a directory in place of the file is a PersistenceError."""
        path = tmp_path / 'sources.json'
        path.mkdir()

        with pytest.raises(PersistenceError):
            JsonFileSourceStore(path).load()

    def test_unwritable_path_raises_persistence_error(self, tmp_path):
        blocker = tmp_path / 'blocker'
        blocker.write_text('not a directory')

        with pytest.raises(PersistenceError):
            JsonFileSourceStore(blocker / 'sources.json').save('[]')

    def test_registry_round_trip(self, tmp_path):
        """Test that the registry reloads identically from disk."""
        store = JsonFileSourceStore(tmp_path / 'sources.json')
        registry = SourceRegistry(store)
        registry.add('https://www.oper-leipzig.de/')
        registry.toggle('gewandhaus')

        reloaded = SourceRegistry(JsonFileSourceStore(tmp_path / 'sources.json'))

        assert reloaded.list() == registry.list()


class TestDynamoDBSourceStore:
    """Test cases for DynamoDBSourceStore."""

    def test_load_missing_item_returns_none(self, dynamodb_store):
        assert dynamodb_store.load() is None

    def test_save_and_load(self, dynamodb_store, sources_table):
        payload = json.dumps([{'id': 'anker', 'url': 'https://anker-leipzig.de/', 'active': True}])

        dynamodb_store.save(payload)

        assert dynamodb_store.load() == payload
        item = sources_table.get_item(Key={'config_key': 'test-sources'})['Item']
        assert item['sources'] == payload
        assert int(item['last_updated']) > 0

    def test_save_overwrites(self, dynamodb_store):
        dynamodb_store.save('[]')
        dynamodb_store.save('[{"id": "x", "url": "https://x.example", "active": false}]')

        assert 'x.example' in dynamodb_store.load()

    def test_registry_round_trip(self, dynamodb_store):
        """Test that the registry reloads identically from DynamoDB."""
        registry = SourceRegistry(dynamodb_store)
        registry.add('https://www.oper-leipzig.de/')
        registry.remove('anker')

        reloaded = SourceRegistry(
            DynamoDBSourceStore('test-calendar-sources', config_key='test-sources')
        )

        assert reloaded.list() == registry.list()

    def test_missing_table_raises_persistence_error(self, aws_env):
        """Test that DynamoDB client errors surface as PersistenceError."""
        with mock_aws():
            store = DynamoDBSourceStore('no-such-table')

            with pytest.raises(PersistenceError):
                store.load()

            with pytest.raises(PersistenceError):
                store.save('[]')

    def test_registry_falls_back_when_table_missing(self, aws_env):
        with mock_aws():
            registry = SourceRegistry(DynamoDBSourceStore('no-such-table'))

            assert len(registry) == 3
            # Saving fails silently
            registry.toggle('anker')
            assert registry.get('anker').active is False
