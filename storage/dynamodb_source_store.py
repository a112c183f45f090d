"""DynamoDB-backed storage for the source configuration."""
import logging
import time
from typing import Optional

import boto3
from botocore.exceptions import ClientError

from processor.errors import PersistenceError
from storage.source_store import SourceStore

logger = logging.getLogger(__name__)


class DynamoDBSourceStore(SourceStore):
    """Keeps the serialized source list in a single DynamoDB item."""

    KEY_ATTRIBUTE = 'config_key'
    PAYLOAD_ATTRIBUTE = 'sources'

    def __init__(self, table_name: str, config_key: str = 'leipzig_calendar_sources_v1'):
        """
        Initialize DynamoDB resource and table reference.

        Args:
            table_name: Name of the DynamoDB table (hash key: config_key)
            config_key: Item key holding the source list
        """
        self.table_name = table_name
        self.config_key = config_key
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(
            f"Initialized DynamoDBSourceStore for table: {table_name} "
            f"(key: {config_key})"
        )

    def load(self) -> Optional[str]:
        """
        Fetch the source list item.

        Returns:
            JSON payload, or None if the item does not exist

        Raises:
            PersistenceError: If the GetItem call fails
        """
        try:
            response = self.table.get_item(
                Key={self.KEY_ATTRIBUTE: self.config_key}
            )
        except ClientError as e:
            logger.error(f"Error reading sources from DynamoDB: {e}")
            raise PersistenceError(str(e)) from e

        item = response.get('Item')
        if not item:
            logger.info(f"No saved sources under key {self.config_key}")
            return None

        return item.get(self.PAYLOAD_ATTRIBUTE)

    def save(self, payload: str) -> None:
        """
        Overwrite the source list item.

        Raises:
            PersistenceError: If the PutItem call fails
        """
        item = {
            self.KEY_ATTRIBUTE: self.config_key,
            self.PAYLOAD_ATTRIBUTE: payload,
            'last_updated': int(time.time())
        }

        try:
            self.table.put_item(Item=item)
        except ClientError as e:
            logger.error(f"Error writing sources to DynamoDB: {e}")
            raise PersistenceError(str(e)) from e

        logger.info(f"Saved sources to DynamoDB table {self.table_name}")
