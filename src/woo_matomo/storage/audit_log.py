"""
Module: audit_log.py
Description: DynamoDB-backed audit log of Matomo delivery attempts.

Stores one immutable item per delivery attempt, serves paginated reads
newest-first and prunes entries past the retention horizon.

Key Components:
- AuditLogStore: record(), fetch_page(), get_order_logs(), prune()
- ensure_table(): create the log table and its indexes when missing
- Monotonic ids from an atomic counter item (id = 0)
- Error handling: boto errors are logged and raised as StorageError

Table layout:
    id (N, partition key), order_id (N), event_type (S), event_data (S, JSON),
    status (S), error_message (S, optional), created_at (S, ISO 8601 UTC)
    GSIs: OrderIndex, EventTypeIndex, StatusIndex (each ranged on created_at)

Dependencies: boto3, botocore, datetime, json, typing
Author: Order Tracking Team
"""

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from woo_matomo.errors import StorageError
from woo_matomo.models.delivery import DeliveryOutcome
from woo_matomo.models.log_entry import EventType, LogEntry, LogPage, LogStatus
from woo_matomo.utils.logger import get_logger

logger = get_logger(__name__)

# Item holding the last issued log id; never returned as an entry
COUNTER_ID = 0

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

ORDER_INDEX = "OrderIndex"
EVENT_TYPE_INDEX = "EventTypeIndex"
STATUS_INDEX = "StatusIndex"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a datetime as a fixed-width, sortable UTC ISO 8601 string."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _error_code(e: Exception) -> Optional[str]:
    if isinstance(e, ClientError):
        return e.response['Error']['Code']
    return None


class AuditLogStore:
    """
    Audit log operations on a DynamoDB table.

    Attributes:
        table_name: Name of the DynamoDB log table
        dynamodb: boto3 DynamoDB resource
        table: boto3 DynamoDB table resource

    Example:
        >>> store = AuditLogStore(table_name="woo-matomo-logs")
        >>> log_id = await store.record(101, EventType.NEW_ORDER, event.event_data(), outcome)
        >>> page = await store.fetch_page(1)
    """

    def __init__(
        self,
        table_name: str,
        region_name: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize the audit log store.

        Args:
            table_name: Name of the DynamoDB log table
            region_name: AWS region, defaults to the boto3 session region
            clock: Source of "now" for created_at and pruning

        Raises:
            ValueError: If table_name is empty or invalid
        """
        if not table_name or not isinstance(table_name, str):
            raise ValueError("table_name must be a non-empty string")

        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        self.table = self.dynamodb.Table(table_name)
        self._clock = clock or _utcnow

        logger.info("Audit log store initialized", table_name=table_name)

    async def ensure_table(self) -> bool:
        """
        Create the log table and its indexes if it does not exist.

        Returns:
            True if the table was created, False if it already existed

        Raises:
            StorageError: If DynamoDB cannot be reached
        """
        try:
            self.table.load()
            return False
        except ClientError as e:
            if _error_code(e) != 'ResourceNotFoundException':
                raise self._storage_error("describe table", e) from e
        except BotoCoreError as e:
            raise self._storage_error("describe table", e) from e

        def gsi(name: str, hash_key: str) -> Dict[str, Any]:
            return {
                'IndexName': name,
                'KeySchema': [
                    {'AttributeName': hash_key, 'KeyType': 'HASH'},
                    {'AttributeName': 'created_at', 'KeyType': 'RANGE'}
                ],
                'Projection': {'ProjectionType': 'ALL'}
            }

        try:
            table = self.dynamodb.create_table(
                TableName=self.table_name,
                KeySchema=[{'AttributeName': 'id', 'KeyType': 'HASH'}],
                AttributeDefinitions=[
                    {'AttributeName': 'id', 'AttributeType': 'N'},
                    {'AttributeName': 'order_id', 'AttributeType': 'N'},
                    {'AttributeName': 'event_type', 'AttributeType': 'S'},
                    {'AttributeName': 'status', 'AttributeType': 'S'},
                    {'AttributeName': 'created_at', 'AttributeType': 'S'}
                ],
                GlobalSecondaryIndexes=[
                    gsi(ORDER_INDEX, 'order_id'),
                    gsi(EVENT_TYPE_INDEX, 'event_type'),
                    gsi(STATUS_INDEX, 'status')
                ],
                BillingMode='PAY_PER_REQUEST'
            )
            table.wait_until_exists()
        except (ClientError, BotoCoreError) as e:
            raise self._storage_error("create table", e) from e

        self.table = table
        logger.info("Audit log table created", table_name=self.table_name)
        return True

    async def record(
        self,
        order_id: int,
        event_type: EventType,
        event_data: Dict[str, Any],
        outcome: DeliveryOutcome
    ) -> int:
        """
        Append an entry for an attempted delivery.

        Args:
            order_id: Order the event belongs to
            event_type: new_order or status_change
            event_data: Structured event snapshot (TrackingEvent.event_data())
            outcome: Outcome of the attempt

        Returns:
            Id of the new log entry

        Raises:
            ValueError: If the outcome was not an attempted delivery
            StorageError: If DynamoDB rejects the write
        """
        log_status = outcome.log_status
        if log_status is None:
            raise ValueError(f"outcome '{outcome.status.value}' is not a delivery attempt")

        error_message = None
        if log_status == LogStatus.ERROR:
            error_message = outcome.error_message or outcome.status.value

        try:
            entry_id = self._next_id()
            item = {
                'id': entry_id,
                'order_id': order_id,
                'event_type': EventType(event_type).value,
                'event_data': json.dumps(event_data, separators=(',', ':')),
                'status': log_status.value,
                'created_at': format_timestamp(self._clock())
            }
            # DynamoDB rejects None attribute values
            if error_message is not None:
                item['error_message'] = error_message

            self.table.put_item(
                Item=item,
                ConditionExpression='attribute_not_exists(#id)',
                ExpressionAttributeNames={'#id': 'id'}
            )

        except (ClientError, BotoCoreError) as e:
            raise self._storage_error("record delivery", e, order_id=order_id) from e

        logger.info(
            "Delivery attempt recorded",
            log_id=entry_id,
            order_id=order_id,
            event_type=item['event_type'],
            status=log_status.value,
            table_name=self.table_name
        )
        return entry_id

    async def fetch_page(
        self,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        *,
        order_id: Optional[int] = None,
        event_type: Optional[EventType] = None,
        status: Optional[LogStatus] = None
    ) -> LogPage:
        """
        Read one page of log entries, newest first.

        Entries with the same created_at are ordered by descending id.
        DynamoDB has no offset reads, so the matching entries are loaded
        and sliced; retention pruning keeps that set bounded.

        Args:
            page: 1-based page number
            page_size: Entries per page (1-100)
            order_id: Only entries for this order
            event_type: Only entries of this event type
            status: Only entries with this status

        Returns:
            LogPage with the requested slice and totals

        Raises:
            ValueError: If page or page_size is out of range
            StorageError: If DynamoDB cannot be read
        """
        if page < 1:
            raise ValueError("page must be 1 or greater")
        if page_size < 1 or page_size > MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")

        event_type = EventType(event_type) if event_type is not None else None
        status = LogStatus(status) if status is not None else None

        try:
            items = self._load_items(order_id=order_id, event_type=event_type, status=status)
        except (ClientError, BotoCoreError) as e:
            raise self._storage_error("fetch log page", e) from e

        entries = self._sorted_entries(items)
        start = (page - 1) * page_size

        result = LogPage(
            entries=entries[start:start + page_size],
            total_count=len(entries),
            page=page,
            page_size=page_size
        )

        logger.info(
            "Log page fetched",
            page=page,
            page_size=page_size,
            count=len(result.entries),
            total_count=result.total_count,
            order_filter=order_id,
            event_type_filter=event_type.value if event_type else None,
            status_filter=status.value if status else None,
            table_name=self.table_name
        )
        return result

    async def get_order_logs(self, order_id: int) -> List[LogEntry]:
        """
        All log entries for one order, newest first.

        Raises:
            StorageError: If DynamoDB cannot be read
        """
        try:
            items = self._load_items(order_id=order_id)
        except (ClientError, BotoCoreError) as e:
            raise self._storage_error("fetch order logs", e, order_id=order_id) from e

        entries = self._sorted_entries(items)
        logger.info(
            "Order logs fetched",
            order_id=order_id,
            count=len(entries),
            table_name=self.table_name
        )
        return entries

    async def prune(self, retention_days: int) -> int:
        """
        Delete entries created more than retention_days ago.

        Running it again without new writes deletes nothing.

        Args:
            retention_days: Retention horizon in days (>= 1)

        Returns:
            Number of deleted entries

        Raises:
            ValueError: If retention_days is below 1
            StorageError: If DynamoDB cannot be read or written
        """
        if retention_days < 1:
            raise ValueError("retention_days must be 1 or greater")

        cutoff = format_timestamp(self._clock() - timedelta(days=retention_days))

        try:
            keys = self._scan_all(
                ProjectionExpression='#id',
                ExpressionAttributeNames={'#id': 'id'},
                FilterExpression=Attr('id').gt(COUNTER_ID) & Attr('created_at').lt(cutoff)
            )
            with self.table.batch_writer() as batch:
                for key in keys:
                    batch.delete_item(Key={'id': key['id']})

        except (ClientError, BotoCoreError) as e:
            raise self._storage_error("prune logs", e, retention_days=retention_days) from e

        logger.info(
            "Old delivery logs pruned",
            deleted=len(keys),
            retention_days=retention_days,
            cutoff=cutoff,
            table_name=self.table_name
        )
        return len(keys)

    def _next_id(self) -> int:
        """Atomically increment and return the log id counter."""
        response = self.table.update_item(
            Key={'id': COUNTER_ID},
            UpdateExpression='ADD last_id :one',
            ExpressionAttributeValues={':one': 1},
            ReturnValues='UPDATED_NEW'
        )
        return int(response['Attributes']['last_id'])

    def _load_items(
        self,
        order_id: Optional[int] = None,
        event_type: Optional[EventType] = None,
        status: Optional[LogStatus] = None
    ) -> List[Dict[str, Any]]:
        """Fetch every item matching the filters, using an index when possible."""
        filters = []
        if event_type is not None:
            filters.append(Attr('event_type').eq(EventType(event_type).value))
        if status is not None:
            filters.append(Attr('status').eq(LogStatus(status).value))

        if order_id is not None:
            key_condition = Key('order_id').eq(order_id)
            index_name = ORDER_INDEX
        elif event_type is not None:
            key_condition = Key('event_type').eq(EventType(event_type).value)
            index_name = EVENT_TYPE_INDEX
            filters = filters[1:]
        elif status is not None:
            key_condition = Key('status').eq(LogStatus(status).value)
            index_name = STATUS_INDEX
            filters = []
        else:
            return self._scan_all(FilterExpression=Attr('id').gt(COUNTER_ID))

        kwargs = {
            'IndexName': index_name,
            'KeyConditionExpression': key_condition,
            'ScanIndexForward': False  # Most recent first
        }
        if filters:
            condition = filters[0]
            for extra in filters[1:]:
                condition = condition & extra
            kwargs['FilterExpression'] = condition

        return self._query_all(**kwargs)

    def _scan_all(self, **kwargs) -> List[Dict[str, Any]]:
        items = []
        while True:
            response = self.table.scan(**kwargs)
            items.extend(response.get('Items', []))
            if 'LastEvaluatedKey' not in response:
                return items
            kwargs['ExclusiveStartKey'] = response['LastEvaluatedKey']

    def _query_all(self, **kwargs) -> List[Dict[str, Any]]:
        items = []
        while True:
            response = self.table.query(**kwargs)
            items.extend(response.get('Items', []))
            if 'LastEvaluatedKey' not in response:
                return items
            kwargs['ExclusiveStartKey'] = response['LastEvaluatedKey']

    def _sorted_entries(self, items: List[Dict[str, Any]]) -> List[LogEntry]:
        entries = [self._item_to_entry(item) for item in items]
        entries.sort(key=lambda e: (e.created_at, e.id), reverse=True)
        return entries

    @staticmethod
    def _item_to_entry(item: Dict[str, Any]) -> LogEntry:
        """Convert a DynamoDB item (Decimal numbers, JSON payload) to a LogEntry."""
        return LogEntry(
            id=int(item['id']),
            order_id=int(item['order_id']),
            event_type=item['event_type'],
            event_payload=json.loads(item['event_data']),
            status=item['status'],
            error_message=item.get('error_message'),
            created_at=datetime.fromisoformat(item['created_at'])
        )

    def _storage_error(self, operation: str, e: Exception, **context) -> StorageError:
        """Log a boto failure and wrap it in a StorageError."""
        code = _error_code(e)
        message = e.response['Error']['Message'] if isinstance(e, ClientError) else str(e)
        logger.error(
            f"Failed to {operation}",
            table_name=self.table_name,
            error_code=code,
            error_message=message,
            **context
        )
        return StorageError(f"Audit log {operation} failed: {message}", code=code)
