import copy

import pytest

from config_loader import DEFAULT_CONFIG
from internal.database import create_backend
from message_storage import MessageStorage
from profile_storage import ProfileStorage


@pytest.fixture
def backend():
    b = create_backend({"backend": "sqlite", "memory": True})
    yield b
    b["engine"].dispose()


@pytest.fixture
def engine(backend):
    return backend["engine"]


@pytest.fixture
def message_storage(backend):
    return MessageStorage(backend["engine"], backend["get_connection"])


@pytest.fixture
def profile_storage(backend):
    return ProfileStorage(backend["engine"], backend["get_connection"])


@pytest.fixture
def config():
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg["database"] = {"backend": "sqlite", "memory": True}
    return cfg
