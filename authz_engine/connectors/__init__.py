"""
Connectors Package for the Authorization Model Engine.

This package provides the session to the platform REST API and the
connectors for its identities, folders, authorization rules, CAS access
controls and configuration services.
"""

from .authorization import AuthorizationConnector, build_filter
from .base_connector import BaseConnector, ConnectorResult
from .cas import AccessControlTransaction, CASConnector, TransactionState, expand_entries
from .configuration import ConfigurationConnector
from .folders import Folder, FolderIndex, FoldersConnector
from .identities import IdentitiesConnector
from .mock_session import MockSession
from .session import Session


def create_session(settings, mock: bool = False) -> Session:
    """Create a real or in-memory session for the given settings."""
    if mock:
        return MockSession(settings)
    return Session(settings)


__all__ = [
    "BaseConnector",
    "ConnectorResult",
    "Session",
    "MockSession",
    "create_session",
    "IdentitiesConnector",
    "FoldersConnector",
    "Folder",
    "FolderIndex",
    "AuthorizationConnector",
    "build_filter",
    "CASConnector",
    "AccessControlTransaction",
    "TransactionState",
    "expand_entries",
    "ConfigurationConnector",
]
