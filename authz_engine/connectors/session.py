"""
Session management for the platform REST API.

A Session owns the authenticated channel to the platform plus one elevated
CAS session that is reused for every CAS access control operation of the
run. All traffic goes through the single synchronous `call` primitive.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

import requests

from ..config import Settings
from ..errors import SessionError, TransportError
from ..models import CASSessionItem
from .auth import get_access_token, resolve_base_url

logger = logging.getLogger(__name__)

JSON = "application/json"

Query = Optional[Union[Dict[str, Any], List[Tuple[str, Any]]]]


class Session:
    """
    Authenticated connection to the platform.

    Use as a context manager so the elevated CAS session is always torn down:

        with Session(settings) as session:
            payload, status = session.call("GET", "/identities/groups")
    """

    def __init__(self, settings: Settings, http: Optional[requests.Session] = None):
        """
        Initialize the session.

        Args:
            settings: Resolved run settings
            http: Optional requests.Session to send requests through
        """
        self.settings = settings
        self.http = http or requests.Session()
        self.base_url = ""
        self.access_token = ""
        self.cas_session_id = ""
        self.connected = False
        self.call_count = 0

    @property
    def cas_server(self) -> str:
        return self.settings.cas_server

    @property
    def limit(self) -> str:
        """Single large page size used instead of cursor pagination."""
        return str(self.settings.response_limit)

    def __enter__(self) -> "Session":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.disconnect()
        return False

    def connect(self):
        """
        Resolve credentials and open the elevated CAS session.

        Raises:
            SessionError: If any step fails; there is no retry
        """
        if self.connected:
            return

        logger.debug("Connecting to the platform")
        self._authenticate()
        self._open_cas_session()
        self.connected = True
        logger.debug(f"Connected to {self.base_url}")

    def disconnect(self):
        """Tear down the elevated CAS session. No-op when not connected."""
        if not self.connected:
            return

        logger.debug(f"Disconnecting from {self.base_url}")
        self._close_cas_session()
        self.connected = False
        logger.debug(f"Disconnected after {self.call_count} calls")

    def call(
        self,
        method: str,
        path: str,
        content_type: Optional[str] = None,
        accept_type: Optional[str] = None,
        query: Query = None,
        body: Any = None,
    ) -> Tuple[Any, int]:
        """
        Perform one synchronous REST exchange.

        Non-2xx statuses are logged but never raised; callers inspect the
        returned status.

        Args:
            method: HTTP verb
            path: Absolute API path, e.g. /identities/groups
            content_type: Request media type (defaults to application/json)
            accept_type: Accepted media type (defaults to application/json)
            query: Query parameters as a dict or list of pairs
            body: JSON-serializable request body, or None

        Returns:
            Tuple of (decoded JSON document or None, HTTP status)

        Raises:
            TransportError: If no HTTP response was received
        """
        params = [(k, str(v)) for k, v in (query.items() if isinstance(query, dict) else query or [])]
        logger.debug(f"Calling {method} {path} params={params}")

        self.call_count += 1
        response, status = self._dispatch(
            method, path, content_type or JSON, accept_type or JSON, params, body
        )

        if 400 <= status <= 599:
            logger.warning(f"Error status {status} from {method} {path}: {response}")
        else:
            logger.debug(f"Successful response {status} from {method} {path}")
        return response, status

    def _dispatch(
        self,
        method: str,
        path: str,
        content_type: str,
        accept_type: str,
        params: List[Tuple[str, str]],
        body: Any,
    ) -> Tuple[Any, int]:
        """Send the request over HTTP and decode the JSON response."""
        headers = {
            "Authorization": f"bearer {self.access_token}",
            "Content-Type": content_type,
            "Accept": accept_type,
        }
        data = json.dumps(body) if body is not None else None

        try:
            resp = self.http.request(
                method,
                f"{self.base_url}{path}",
                params=params or None,
                data=data,
                headers=headers,
                verify=self.settings.valid_tls,
            )
        except requests.RequestException as e:
            raise TransportError(f"Error communicating with REST API: {e}") from e

        payload = None
        if resp.content:
            try:
                payload = resp.json()
            except ValueError:
                logger.warning(f"Response from {method} {path} is not JSON")
        return payload, resp.status_code

    def _authenticate(self):
        """Resolve base URL and access token."""
        self.base_url = resolve_base_url(self.settings)
        self.access_token = get_access_token(self.settings, self.base_url)
        logger.debug("Retrieved OAuth access token")

    def _open_cas_session(self):
        """Create a CAS session and assume the superUser role in it."""
        logger.debug(f"Creating CAS session on {self.cas_server}")
        payload, status = self.call("POST", f"/casManagement/servers/{self.cas_server}/sessions")
        if status >= 300 or not isinstance(payload, dict):
            raise SessionError(f"CAS session cannot be created (status {status})")
        try:
            self.cas_session_id = CASSessionItem.model_validate(payload).id
        except ValueError as e:
            raise SessionError(f"CAS session response has no id: {payload}") from e

        logger.debug(f"Elevating privileges for CAS session {self.cas_session_id}")
        _, status = self.call(
            "PUT",
            f"/casAccessManagement/servers/{self.cas_server}/admUser/assumeRole/superUser",
            query={"sessionId": self.cas_session_id},
        )
        if status >= 300:
            self._close_cas_session()
            raise SessionError(f"CAS session privileges cannot be elevated (status {status})")

    def _close_cas_session(self):
        if not self.cas_session_id:
            return
        logger.debug(f"Destroying CAS session {self.cas_session_id}")
        self.call("DELETE", f"/casManagement/servers/{self.cas_server}/sessions/{self.cas_session_id}")
        self.cas_session_id = ""
