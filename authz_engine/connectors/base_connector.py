"""
Base Connector Classes for the Authorization Model Engine.

This module provides the foundation for the platform service connectors
(identities, folders, authorization rules, CAS access controls).
"""

import logging
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import ResponseDecodeError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class ConnectorResult:
    """Result of a connector operation."""

    def __init__(self, success: bool, message: str = "", data: Optional[Any] = None,
                 error: Optional[str] = None):
        self.success = success
        self.message = message
        self.data = data
        self.error = error

    def __bool__(self):
        return self.success

    def __str__(self):
        return f"{'✓' if self.success else '✗'} {self.message}"

    def __repr__(self):
        return f"ConnectorResult(success={self.success}, message={self.message!r})"


class BaseConnector:
    """
    Base class for all platform service connectors.

    Every connector shares the run's Session and sends all traffic through
    its `call` primitive.
    """

    def __init__(self, session):
        """
        Initialize the connector.

        Args:
            session: Connected Session (or MockSession)
        """
        self.session = session
        self.service_name = self.__class__.__name__.replace('Connector', '').lower()

    @property
    def limit(self) -> str:
        return self.session.limit

    def _decode(self, model: Type[M], payload: Any, endpoint: str, status: int = 200) -> M:
        """
        Decode a response document into its typed model.

        Error statuses are never decoded as results.

        Raises:
            ResponseDecodeError: If the status is not 2xx or the payload does
                                 not fit the model
        """
        if not self._ok(status):
            message = payload.get("message") if isinstance(payload, dict) else None
            raise ResponseDecodeError(endpoint, f"error status {status}: {message or 'no details'}", status)
        if payload is None:
            raise ResponseDecodeError(endpoint, "empty response body")
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise ResponseDecodeError(endpoint, str(e)) from e

    @staticmethod
    def _ok(status: int) -> bool:
        return 200 <= status < 300
