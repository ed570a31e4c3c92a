"""Auth test fixtures."""

import json
from unittest.mock import Mock

import pytest

from clients.valkey_client import ValkeyClient


@pytest.fixture
def valkey():
    """
    ValkeyClient stand-in backed by a dict.

    TTLs are recorded in `expirations` rather than enforced.
    """
    store: dict[str, str] = {}
    mock = Mock(spec=ValkeyClient)
    mock.store = store
    mock.expirations = {}

    def set_json(key, value, expire_seconds=None):
        store[key] = json.dumps(value)
        mock.expirations[key] = expire_seconds

    def get_json(key):
        value = store.get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in key '{key}': {e}")

    def delete(key):
        return store.pop(key, None) is not None

    mock.set_json.side_effect = set_json
    mock.get_json.side_effect = get_json
    mock.delete.side_effect = delete
    return mock
