"""Tests for the idempotent stores and DynamoDB fault translation."""

import threading
from concurrent.futures import ThreadPoolExecutor

import boto3
import pytest
from botocore.exceptions import (
    ClientError,
    EndpointConnectionError,
    NoCredentialsError,
)
from botocore.stub import Stubber

from waitlist.config import Settings
from waitlist.errors import ConfigurationError, TransientInfrastructureError
from waitlist.records import build_entry
from waitlist.store import (
    CONDITION,
    DynamoWaitlistStore,
    InMemoryWaitlistStore,
    InsertOutcome,
    UnconfiguredStore,
    build_store,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class RaisingTable:
    """Table double whose put_item raises the given exception."""

    name = "waitlist"

    def __init__(self, exc):
        self.exc = exc
        self.calls = []

    def put_item(self, **kwargs):
        self.calls.append(kwargs)
        raise self.exc


class RecordingTable:
    name = "waitlist"

    def __init__(self):
        self.calls = []

    def put_item(self, **kwargs):
        self.calls.append(kwargs)
        return {}


def client_error(code, message="boom"):
    return ClientError({"Error": {"Code": code, "Message": message}}, "PutItem")


@pytest.fixture
def table():
    return boto3.resource("dynamodb", region_name="us-east-1").Table("waitlist")


@pytest.fixture
def entry():
    return build_entry("user@example.com", user_agent="pytest", client_ip="203.0.113.7")


# ---------------------------------------------------------------------------
# DynamoWaitlistStore
# ---------------------------------------------------------------------------


class TestDynamoStore:

    def test_conditional_put_is_single_call(self, entry):
        """The store must not read before writing."""
        fake = RecordingTable()
        result = DynamoWaitlistStore(fake).insert_if_absent(entry)
        assert result.outcome is InsertOutcome.CREATED
        assert fake.calls == [{"Item": entry.to_item(), "ConditionExpression": CONDITION}]

    def test_created_via_stubbed_client(self, table, entry):
        with Stubber(table.meta.client) as stubber:
            stubber.add_response("put_item", {})
            result = DynamoWaitlistStore(table).insert_if_absent(entry)
            stubber.assert_no_pending_responses()
        assert result.outcome is InsertOutcome.CREATED
        assert result.error is None

    def test_conditional_check_failure_is_already_exists(self, table, entry):
        with Stubber(table.meta.client) as stubber:
            stubber.add_client_error("put_item",
                                     service_error_code="ConditionalCheckFailedException",
                                     service_message="The conditional request failed",
                                     http_status_code=400)
            result = DynamoWaitlistStore(table).insert_if_absent(entry)
        assert result.outcome is InsertOutcome.ALREADY_EXISTS
        assert result.error is None

    def test_missing_table_is_configuration_error(self, table, entry):
        with Stubber(table.meta.client) as stubber:
            stubber.add_client_error("put_item",
                                     service_error_code="ResourceNotFoundException",
                                     service_message="Requested resource not found",
                                     http_status_code=400)
            result = DynamoWaitlistStore(table).insert_if_absent(entry)
        assert result.outcome is InsertOutcome.FAILED
        assert isinstance(result.error, ConfigurationError)
        assert "waitlist" in str(result.error)

    @pytest.mark.parametrize("code", [
        "AccessDeniedException",
        "UnrecognizedClientException",
        "InvalidSignatureException",
        "ExpiredTokenException",
        "ValidationException",
    ])
    def test_configuration_codes(self, code, entry):
        result = DynamoWaitlistStore(RaisingTable(client_error(code))).insert_if_absent(entry)
        assert result.outcome is InsertOutcome.FAILED
        assert isinstance(result.error, ConfigurationError)

    @pytest.mark.parametrize("code", [
        "ProvisionedThroughputExceededException",
        "ThrottlingException",
        "InternalServerError",
        "SomethingNew",
    ])
    def test_transient_codes(self, code, entry):
        result = DynamoWaitlistStore(RaisingTable(client_error(code))).insert_if_absent(entry)
        assert result.outcome is InsertOutcome.FAILED
        assert isinstance(result.error, TransientInfrastructureError)

    def test_missing_credentials_is_configuration_error(self, entry):
        result = DynamoWaitlistStore(RaisingTable(NoCredentialsError())).insert_if_absent(entry)
        assert isinstance(result.error, ConfigurationError)
        assert "credentials" in str(result.error)

    def test_connection_failure_is_transient(self, entry):
        exc = EndpointConnectionError(endpoint_url="https://dynamodb.us-east-1.amazonaws.com")
        result = DynamoWaitlistStore(RaisingTable(exc)).insert_if_absent(entry)
        assert isinstance(result.error, TransientInfrastructureError)

    def test_translated_error_keeps_cause(self, entry):
        exc = client_error("ThrottlingException")
        result = DynamoWaitlistStore(RaisingTable(exc)).insert_if_absent(entry)
        assert result.error.__cause__ is exc

    def test_public_message_hides_vendor_names(self, entry):
        result = DynamoWaitlistStore(RaisingTable(client_error("ResourceNotFoundException"))).insert_if_absent(entry)
        assert "Exception" not in result.error.public_message
        assert "DynamoDB" not in result.error.public_message


class TestFromSettings:

    def test_requires_table_name(self):
        with pytest.raises(ConfigurationError):
            DynamoWaitlistStore.from_settings(Settings())

    def test_builds_table_resource(self):
        store = DynamoWaitlistStore.from_settings(Settings(table_name="signups", region="eu-west-1"))
        assert store.table_name == "signups"
        assert store.table.meta.client.meta.region_name == "eu-west-1"

    def test_endpoint_override(self):
        store = DynamoWaitlistStore.from_settings(
            Settings(table_name="signups", region="us-east-1", endpoint_url="http://localhost:8000"))
        assert store.table.meta.client.meta.endpoint_url == "http://localhost:8000"


class TestBuildStore:

    def test_unconfigured_when_table_missing(self):
        assert isinstance(build_store(Settings()), UnconfiguredStore)

    def test_unconfigured_when_region_missing(self, monkeypatch):
        monkeypatch.delenv("AWS_DEFAULT_REGION", raising=False)
        monkeypatch.delenv("AWS_REGION", raising=False)
        monkeypatch.setenv("AWS_CONFIG_FILE", "/nonexistent")
        store = build_store(Settings(table_name="signups"))
        assert isinstance(store, UnconfiguredStore)

    def test_dynamo_when_configured(self):
        assert isinstance(build_store(Settings(table_name="signups", region="us-east-1")), DynamoWaitlistStore)

    def test_unconfigured_store_always_fails(self, entry):
        result = UnconfiguredStore().insert_if_absent(entry)
        assert result.outcome is InsertOutcome.FAILED
        assert isinstance(result.error, ConfigurationError)


# ---------------------------------------------------------------------------
# InMemoryWaitlistStore
# ---------------------------------------------------------------------------


class TestInMemoryStore:

    def test_first_insert_wins(self, entry):
        store = InMemoryWaitlistStore()
        assert store.insert_if_absent(entry).outcome is InsertOutcome.CREATED
        second = build_entry("user@example.com", source="other")
        assert store.insert_if_absent(second).outcome is InsertOutcome.ALREADY_EXISTS
        assert store.get("user@example.com")["requestId"] == entry.request_id
        assert store.get("user@example.com")["source"] == entry.source
        assert len(store) == 1

    def test_concurrent_inserts_create_exactly_one(self):
        store = InMemoryWaitlistStore()
        n = 32
        barrier = threading.Barrier(n)

        def attempt(_):
            entry = build_entry("race@example.com")
            barrier.wait()
            return store.insert_if_absent(entry).outcome

        with ThreadPoolExecutor(max_workers=n) as pool:
            outcomes = list(pool.map(attempt, range(n)))

        assert outcomes.count(InsertOutcome.CREATED) == 1
        assert outcomes.count(InsertOutcome.ALREADY_EXISTS) == n - 1
        assert len(store) == 1
