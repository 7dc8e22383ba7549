"""
Test bootstrap:
- Put tests/ on sys.path so test modules can import the helpers package
- Shared fixtures for clients, transports and keys
"""
import logging
import pathlib
import sys

import pytest

TESTS_DIR = pathlib.Path(__file__).parent.resolve()
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

from helpers import MockTransport, mk_client, mk_ed25519_key  # noqa: E402

from hiero_client.client.client import set_default_client  # noqa: E402


@pytest.fixture
def transport():
    """A fresh scripted transport."""
    return MockTransport()


@pytest.fixture
def client(transport):
    """Three-node client with an operator, wired to the mock transport."""
    c = mk_client(3, transport)
    yield c
    c.close()


@pytest.fixture
def private_key():
    """Deterministic Ed25519 key."""
    return mk_ed25519_key(7)


@pytest.fixture(autouse=True)
def _reset_default_client():
    yield
    set_default_client(None)


@pytest.fixture(autouse=True)
def _debug_logging(caplog):
    caplog.set_level(logging.DEBUG, logger="hiero_client")
    yield
