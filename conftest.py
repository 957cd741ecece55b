"""Shared pytest fixtures for the AD computer report."""

from unittest.mock import MagicMock

import pytest

from ldap.models import Node


class FakeDirectoryClient:
    """In-memory stand-in for DirectoryFacade, keyed by distinguished name."""

    def __init__(self, counts, failures=None):
        self.counts = dict(counts)
        self.failures = dict(failures or {})
        self.calls = []

    def count_descendants_of_type(self, base_dn, object_class="computer"):
        self.calls.append((base_dn, object_class))
        if base_dn in self.failures:
            raise self.failures[base_dn]
        return self.counts[base_dn]


@pytest.fixture
def make_node():
    def _make(dn, name=None):
        return Node(distinguished_name=dn, name=name or dn.split(",", 1)[0].split("=", 1)[1])

    return _make


@pytest.fixture
def fake_client_factory():
    return FakeDirectoryClient


@pytest.fixture
def mock_entry():
    """Build a MagicMock shaped like an ldap3 Entry."""

    def _make(dn, **attributes):
        entry = MagicMock()
        entry.entry_dn = dn
        entry.entry_attributes = list(attributes)
        for attr_name, value in attributes.items():
            setattr(entry, attr_name, MagicMock(value=value))
        return entry

    return _make
