"""
Exception hierarchy for the Authorization Model Engine.

Fatal errors propagate to the outermost caller (the CLI), which logs them and
terminates the process. Item-scoped business errors are reported through
ConnectorResult objects instead and never raised.
"""

from typing import Optional


class AuthzEngineError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(AuthzEngineError):
    """Settings are missing or malformed."""


class SessionError(AuthzEngineError):
    """The connection to the remote platform could not be established or used."""


class AuthenticationError(SessionError):
    """An access token could not be acquired."""


class TransportError(SessionError):
    """The HTTP exchange itself failed (DNS, TLS, connection reset, ...)."""


class ResponseDecodeError(AuthzEngineError):
    """A lookup failed or its response did not match the structure expected for its endpoint."""

    def __init__(self, endpoint: str, detail: str, status: Optional[int] = None):
        super().__init__(f"Unexpected response from {endpoint}: {detail}")
        self.endpoint = endpoint
        self.detail = detail
        self.status = status


class SchemaMismatchError(AuthzEngineError):
    """An input file header does not match the expected schema."""

    def __init__(self, path: str, header, schema):
        super().__init__(
            f"Header row of {path} does not match expected schema: "
            f"got {list(header)}, expected {list(schema)}"
        )
        self.path = path
        self.header = list(header)
        self.schema = list(schema)


class RuleScopeError(AuthzEngineError):
    """An authorization rule was asserted without a usable scope."""


class AccessControlTransactionError(AuthzEngineError):
    """A step of a CAS access control transaction failed; nothing was committed."""

    def __init__(self, library: str, status: int, response=None, action: str = "update"):
        super().__init__(
            f"Access control {action} on CAS library {library} failed with status {status}"
        )
        self.library = library
        self.status = status
        self.response = response
        self.action = action
