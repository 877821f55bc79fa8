"""Idempotent record stores.

Every store implements ``insert_if_absent(entry) -> InsertResult``. The
DynamoDB adapter relies on a conditional put so that concurrent inserts of
the same email resolve inside the table, never in this process.
"""
import enum
import logging
import threading
from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    NoRegionError,
    PartialCredentialsError,
)

from waitlist.errors import ConfigurationError, StoreError, TransientInfrastructureError
from waitlist.records import WaitlistEntry

logger = logging.getLogger(__name__)

CONDITION = "attribute_not_exists(email)"

_MISSING_TABLE_CODES = {"ResourceNotFoundException"}
_CREDENTIAL_CODES = {
    "AccessDeniedException",
    "UnrecognizedClientException",
    "InvalidSignatureException",
    "MissingAuthenticationTokenException",
    "ExpiredTokenException",
}
_INVALID_REQUEST_CODES = {"ValidationException"}


class InsertOutcome(enum.Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    FAILED = "failed"


@dataclass(frozen=True)
class InsertResult:
    outcome: InsertOutcome
    error: Optional[StoreError] = None

    @classmethod
    def created(cls):
        return cls(InsertOutcome.CREATED)

    @classmethod
    def already_exists(cls):
        return cls(InsertOutcome.ALREADY_EXISTS)

    @classmethod
    def failed(cls, error: StoreError):
        return cls(InsertOutcome.FAILED, error)


def translate_client_error(exc: ClientError, table_name: str) -> StoreError:
    code = exc.response.get("Error", {}).get("Code", "")
    if code in _MISSING_TABLE_CODES:
        err = ConfigurationError(f"Table {table_name!r} was not found. Check WAITLIST_TABLE.")
    elif code in _CREDENTIAL_CODES:
        err = ConfigurationError("AWS credentials are not configured correctly on the API server.")
    elif code in _INVALID_REQUEST_CODES:
        err = ConfigurationError(f"Table {table_name!r} rejected the item: {exc}")
    else:
        err = TransientInfrastructureError(f"Store request failed ({code or 'unknown'}).")
    err.__cause__ = exc
    return err


def translate_botocore_error(exc: BotoCoreError) -> StoreError:
    if isinstance(exc, (NoCredentialsError, PartialCredentialsError)):
        err = ConfigurationError("AWS credentials are not configured correctly on the API server.")
    elif isinstance(exc, NoRegionError):
        err = ConfigurationError("AWS region is not configured. Set AWS_REGION.")
    else:
        err = TransientInfrastructureError(f"Store is unreachable: {exc}")
    err.__cause__ = exc
    return err


class DynamoWaitlistStore:
    def __init__(self, table):
        self.table = table

    @classmethod
    def from_settings(cls, settings, session=None):
        if not settings.table_name:
            raise ConfigurationError("WAITLIST_TABLE is not set.")
        session = session or boto3.session.Session()
        resource = session.resource("dynamodb",
                                    region_name=settings.region,
                                    endpoint_url=settings.endpoint_url)
        return cls(resource.Table(settings.table_name))

    @property
    def table_name(self) -> str:
        return getattr(self.table, "name", "") or getattr(self.table, "table_name", "")

    def insert_if_absent(self, entry: WaitlistEntry) -> InsertResult:
        try:
            self.table.put_item(Item=entry.to_item(), ConditionExpression=CONDITION)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                return InsertResult.already_exists()
            return InsertResult.failed(translate_client_error(e, self.table_name))
        except BotoCoreError as e:
            return InsertResult.failed(translate_botocore_error(e))
        return InsertResult.created()


class UnconfiguredStore:
    def __init__(self, reason: str = "Missing AWS config. Set AWS_REGION and WAITLIST_TABLE."):
        self.reason = reason

    def insert_if_absent(self, entry: WaitlistEntry) -> InsertResult:
        return InsertResult.failed(ConfigurationError(self.reason))


class InMemoryWaitlistStore:
    def __init__(self):
        self._items = {}
        self._lock = threading.Lock()

    def insert_if_absent(self, entry: WaitlistEntry) -> InsertResult:
        with self._lock:
            if entry.email in self._items:
                return InsertResult.already_exists()
            self._items[entry.email] = entry.to_item()
        return InsertResult.created()

    def get(self, email: str) -> Optional[dict]:
        with self._lock:
            item = self._items.get(email)
            return dict(item) if item is not None else None

    def __len__(self):
        with self._lock:
            return len(self._items)


def build_store(settings):
    if not settings.store_configured:
        logger.warning("Missing AWS config. Set AWS_REGION and WAITLIST_TABLE in environment variables.")
        return UnconfiguredStore()
    try:
        return DynamoWaitlistStore.from_settings(settings)
    except (ConfigurationError, BotoCoreError) as e:
        logger.error("Could not create DynamoDB store: %s", e)
        return UnconfiguredStore(str(e))
