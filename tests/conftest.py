"""Shared fixtures for the waitlist tests.

No test touches AWS: the DynamoDB adapter is exercised through
botocore's Stubber or fake tables, everything else through the
in-memory store.
"""

import pytest

from waitlist.config import Settings
from waitlist.core import WaitlistApp
from waitlist.store import InMemoryWaitlistStore


@pytest.fixture(autouse=True)
def _fake_aws_env(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    for name in ("WAITLIST_TABLE", "TABLE_NAME", "ALLOWED_ORIGINS", "ALLOWED_ORIGIN", "APP_ENV"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def store():
    return InMemoryWaitlistStore()


@pytest.fixture
def settings():
    return Settings(table_name="waitlist", region="us-east-1")


@pytest.fixture
def app(store, settings):
    return WaitlistApp(store, settings)


