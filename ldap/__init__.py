"""
Directory access for the AD computer report.

Submodules:
- adapters.ldap_adapter: ldap3 connection, credential and search handling
- facade.directory_facade: node discovery and descendant counting
- models: Node record returned by discovery
- exceptions: error taxonomy shared across the report pipeline

The adapter and facade are imported from their submodules so that the
exceptions and models stay importable when ldap3 is not installed.
"""

from .exceptions import (
    CredentialError,
    DirectoryEnvironmentError,
    DirectoryReportError,
    NoCountsObtainedError,
    NoNodesFoundError,
    OutputPathError,
)
from .models import Node

__all__ = [
    'CredentialError',
    'DirectoryEnvironmentError',
    'DirectoryReportError',
    'NoCountsObtainedError',
    'NoNodesFoundError',
    'Node',
    'OutputPathError',
]
