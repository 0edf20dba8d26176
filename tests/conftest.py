"""
Pytest configuration and fixtures for b2storage-sdk tests.
"""

import pytest

from b2storage_sdk import B2Client, BucketType, ClientConfig

from fake_b2 import ACCOUNT_ID, API_HOST, APPLICATION_KEY, FakeB2


@pytest.fixture
def fake_b2() -> FakeB2:
    """Provide an empty in-memory B2 service."""
    return FakeB2()


@pytest.fixture
def config() -> ClientConfig:
    """Provide a config pointing at the fake service."""
    return ClientConfig(account_id=ACCOUNT_ID, application_key=APPLICATION_KEY, host=API_HOST)


@pytest.fixture
def client(fake_b2, config):
    """Provide a client whose HTTP session is served by the fake."""
    with B2Client(config, session=fake_b2.session()) as b2:
        yield b2


@pytest.fixture
def bucket(client):
    """Provide a freshly created private bucket."""
    return client.create_bucket("test-bucket", BucketType.ALL_PRIVATE)
