"""
CAS Access Controls Connector for the Authorization Model Engine.

Direct access controls on a CAS library are changed inside a server-side
transaction bound to the run's elevated CAS session:

    IDLE -> LOCKED -> IN_TRANSACTION -> COMMITTED
                                     -> CANCELLED   (mutation or commit rejected)
                   -> FAILED                        (start rejected)

The lock is advisory and best effort. Every other rejected step raises
AccessControlTransactionError, and nothing is reported as committed unless
the commit itself succeeded.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Sequence

from ..errors import AccessControlTransactionError
from ..models import AccessControl, CASLibCollection
from .base_connector import BaseConnector, ConnectorResult

logger = logging.getLogger(__name__)

ACCESS_CONTROLS_MEDIA_TYPE = "application/vnd.sas.cas.access.controls+json"


class TransactionState(str, Enum):
    IDLE = "IDLE"
    LOCKED = "LOCKED"
    IN_TRANSACTION = "IN_TRANSACTION"
    COMMITTED = "COMMITTED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


def expand_entries(controls: Sequence[AccessControl]) -> List[Dict[str, Any]]:
    """Expand declarations into wire entries, one per (identity, permission)."""
    return [entry.to_wire() for control in controls for entry in control.expand()]


class AccessControlTransaction:
    """One lock/begin/mutate/commit cycle on a CAS library."""

    def __init__(self, session, library: str):
        self.session = session
        self.library = library
        self.state = TransactionState.IDLE

    @property
    def _server(self) -> str:
        return self.session.cas_server

    @property
    def _session_query(self):
        return [("sessionId", self.session.cas_session_id)]

    @property
    def controls_path(self) -> str:
        return f"/casAccessManagement/servers/{self._server}/caslibControls/{self.library}"

    def _session_action(self, action: str) -> int:
        _, status = self.session.call(
            "POST",
            f"/casManagement/servers/{self._server}/sessions/{self.session.cas_session_id}",
            query=[("action", action)],
        )
        return status

    def lock(self):
        logger.debug(f"Locking CAS library {self.library}")
        _, status = self.session.call("POST", f"{self.controls_path}/lock", query=self._session_query)
        if not 200 <= status < 300:
            logger.warning(f"Could not lock CAS library {self.library} (status {status}), continuing")
        self.state = TransactionState.LOCKED

    def begin(self):
        logger.debug("Starting CAS access control transaction")
        status = self._session_action("start")
        if not 200 <= status < 300:
            self.state = TransactionState.FAILED
            raise AccessControlTransactionError(self.library, status, action="start")
        self.state = TransactionState.IN_TRANSACTION

    def commit(self):
        logger.debug("Committing CAS access control transaction")
        status = self._session_action("commit")
        if not 200 <= status < 300:
            self.cancel()
            raise AccessControlTransactionError(self.library, status, action="commit")
        self.state = TransactionState.COMMITTED

    def cancel(self):
        logger.warning(f"Cancelling CAS access control transaction for {self.library}")
        self._session_action("cancel")
        self.state = TransactionState.CANCELLED

    def mutate(self, method: str, entries: List[Dict[str, Any]]):
        """
        Send the entry list and commit, or cancel if the service rejects it.

        Raises:
            AccessControlTransactionError: If the mutation or its commit was rejected
        """
        if self.state != TransactionState.IN_TRANSACTION:
            raise RuntimeError(f"Cannot mutate access controls in state {self.state.value}")

        payload, status = self.session.call(
            method, self.controls_path,
            content_type=ACCESS_CONTROLS_MEDIA_TYPE,
            query=self._session_query,
            body=entries,
        )
        if not 200 <= status < 300:
            self.cancel()
            raise AccessControlTransactionError(self.library, status, payload)
        self.commit()

    def run(self, method: str, entries: List[Dict[str, Any]]):
        self.lock()
        self.begin()
        self.mutate(method, entries)


class CASConnector(BaseConnector):
    """Connector for CAS libraries and their direct access controls."""

    def validate_library(self, name: str) -> bool:
        """Check whether a CAS library (caslib) exists, hidden ones included."""
        logger.debug(f"Validating CAS library {name}")
        path = f"/casManagement/servers/{self.session.cas_server}/caslibs"
        payload, status = self.session.call(
            "GET", path,
            query=[
                ("sessionId", self.session.cas_session_id),
                ("includeHidden", "true"),
                ("limit", self.limit),
                ("filter", f'eq("name","{name}")'),
            ],
        )
        if status == 404:
            return False
        search = self._decode(CASLibCollection, payload, path, status)
        exists = search.count > 0
        logger.debug(f"CAS library {name} {'exists' if exists else 'does not exist'}")
        return exists

    def _transact(self, library: str, method: str, entries: List[Dict[str, Any]],
                  description: str) -> ConnectorResult:
        transaction = AccessControlTransaction(self.session, library)
        try:
            transaction.run(method, entries)
        except AccessControlTransactionError as e:
            logger.error(str(e))
            return ConnectorResult(False, str(e), transaction.state, error=str(e))
        return ConnectorResult(True, description, transaction.state)

    def apply_controls(self, library: str, controls: Sequence[AccessControl]) -> ConnectorResult:
        """
        Replace all direct access controls of a library with `controls`.

        Args:
            library: CAS library name
            controls: Declarations; each permission becomes one entry

        Returns:
            ConnectorResult whose data is the final TransactionState
        """
        entries = expand_entries(controls)
        logger.info(f"Replacing direct CAS access controls on {library} with {len(entries)} entries")
        return self._transact(library, "PUT", entries, f"Replaced access controls on {library}")

    def remove_controls(self, library: str, controls: Sequence[AccessControl]) -> ConnectorResult:
        """Remove the listed direct access controls from a library."""
        entries = expand_entries(controls)
        logger.info(f"Removing {len(entries)} direct CAS access controls from {library}")
        return self._transact(library, "DELETE", entries, f"Removed access controls from {library}")

    def remove_all_controls(self, library: str) -> ConnectorResult:
        """Remove every direct access control from a library."""
        logger.info(f"Removing all direct CAS access controls from {library}")
        return self._transact(library, "DELETE", [], f"Removed all access controls from {library}")
