"""
Tests for transactional CAS access control updates.
"""

import pytest

from authz_engine.connectors import AccessControlTransaction, CASConnector, TransactionState, expand_entries
from authz_engine.errors import AccessControlTransactionError, ResponseDecodeError
from authz_engine.models import AccessControl

CONTROLS_PATH = "/casAccessManagement/servers/cas-shared-default/caslibControls"


def entry(identity, permission, identity_type="group"):
    return {"type": "grant", "permission": permission, "identityType": identity_type, "identity": identity}


def session_path(session):
    return f"/casManagement/servers/cas-shared-default/sessions/{session.cas_session_id}"


class TestEntryExpansion:
    """Test cases for access control expansion."""

    def test_two_permissions_yield_two_entries(self):
        controls = [AccessControl(identity="Sales", permissions=["readInfo", "select"])]

        assert expand_entries(controls) == [entry("Sales", "readInfo"), entry("Sales", "select")]

    def test_entries_share_version_and_filter(self):
        controls = [AccessControl(identity="Sales", permissions=["select", "insert"], version=1,
                                  table_filter="region = 'EU'")]

        entries = expand_entries(controls)

        assert all(e["version"] == 1 and e["tableFilter"] == "region = 'EU'" for e in entries)
        assert [e["permission"] for e in entries] == ["select", "insert"]


class TestAccessControlTransaction:
    """Test cases for the lock/begin/mutate/commit protocol."""

    def test_successful_run_commits(self, mock_session):
        transaction = AccessControlTransaction(mock_session, "Public")

        transaction.run("PUT", [entry("Sales", "select")])

        assert transaction.state == TransactionState.COMMITTED
        actions = [c.params.get("action") for c in mock_session.calls_to("POST", "/casManagement/servers")]
        assert actions[-2:] == ["start", "commit"]
        assert mock_session.caslibs["Public"] == [entry("Sales", "select")]

    def test_mutation_requires_open_transaction(self, mock_session):
        transaction = AccessControlTransaction(mock_session, "Public")

        with pytest.raises(RuntimeError):
            transaction.mutate("PUT", [])

    def test_failed_mutation_cancels(self, mock_session):
        """Test that a rejected mutation cancels instead of committing."""
        mock_session.add_caslib("Public", [entry("Sales", "select")])
        mock_session.fail_on("PUT", f"{CONTROLS_PATH}/Public", 400)
        transaction = AccessControlTransaction(mock_session, "Public")

        with pytest.raises(AccessControlTransactionError) as excinfo:
            transaction.run("PUT", [entry("HR", "select")])

        assert excinfo.value.status == 400
        assert transaction.state == TransactionState.CANCELLED
        actions = [c.params.get("action") for c in mock_session.calls_to("POST", "/casManagement/servers")]
        assert "commit" not in actions
        assert actions[-1] == "cancel"
        assert mock_session.caslibs["Public"] == [entry("Sales", "select")]

    def test_lock_failure_does_not_block(self, mock_session):
        """Test that the lock is best effort."""
        mock_session.fail_on("POST", f"{CONTROLS_PATH}/Public/lock", 409)
        transaction = AccessControlTransaction(mock_session, "Public")

        transaction.run("PUT", [entry("Sales", "select")])

        assert transaction.state == TransactionState.COMMITTED

    def test_failed_start_skips_mutation(self, mock_session):
        """Test that no update is sent when the transaction cannot be started."""
        mock_session.add_caslib("Public", [entry("Sales", "select")])
        mock_session.fail_on("POST", session_path(mock_session), 500)
        transaction = AccessControlTransaction(mock_session, "Public")

        with pytest.raises(AccessControlTransactionError) as excinfo:
            transaction.run("PUT", [entry("HR", "select")])

        assert excinfo.value.action == "start"
        assert transaction.state == TransactionState.FAILED
        assert mock_session.calls_to("PUT", f"{CONTROLS_PATH}/Public") == []
        assert mock_session.caslibs["Public"] == [entry("Sales", "select")]

    def test_failed_commit_cancels(self, mock_session, monkeypatch):
        """Test that a rejected commit is never reported as committed."""
        mock_session.add_caslib("Public", [entry("Sales", "select")])
        session_action = mock_session._session_action

        def reject_commit(query, body, session_id):
            if query.get("action") == "commit":
                return {"message": "Commit rejected"}, 500
            return session_action(query, body, session_id)

        monkeypatch.setattr(mock_session, "_session_action", reject_commit)
        transaction = AccessControlTransaction(mock_session, "Public")

        with pytest.raises(AccessControlTransactionError) as excinfo:
            transaction.run("PUT", [entry("HR", "select")])

        assert excinfo.value.action == "commit"
        assert transaction.state == TransactionState.CANCELLED
        actions = [c.params.get("action") for c in mock_session.calls_to("POST", session_path(mock_session))]
        assert actions[-2:] == ["commit", "cancel"]
        assert mock_session.caslibs["Public"] == [entry("Sales", "select")]


class TestCASConnector:
    """Test cases for CASConnector."""

    @pytest.fixture
    def cas(self, mock_session):
        return CASConnector(mock_session)

    def test_validate_library(self, cas, mock_session):
        assert cas.validate_library("Public") is True
        assert cas.validate_library("Missing") is False

        call = mock_session.calls_to("GET", "/casManagement/servers")[-1]
        assert call.params["filter"] == 'eq("name","Missing")'
        assert call.params["includeHidden"] == "true"
        assert call.params["sessionId"] == mock_session.cas_session_id

    def test_apply_replaces_all_entries(self, cas, mock_session):
        mock_session.add_caslib("Sales", [entry("Old", "select")])

        result = cas.apply_controls("Sales", [AccessControl(identity="Sales", permissions=["readInfo", "select"])])

        assert result.success
        assert result.data == TransactionState.COMMITTED
        assert mock_session.caslibs["Sales"] == [entry("Sales", "readInfo"), entry("Sales", "select")]

    def test_apply_is_idempotent(self, cas, mock_session):
        mock_session.add_caslib("Sales")
        controls = [AccessControl(identity="Sales", permissions=["readInfo", "select"])]

        cas.apply_controls("Sales", controls)
        first = list(mock_session.caslibs["Sales"])
        cas.apply_controls("Sales", controls)

        assert mock_session.caslibs["Sales"] == first

    def test_remove_listed_entries(self, cas, mock_session):
        mock_session.add_caslib("Public", [
            entry("*", "readInfo"), entry("*", "select"), entry("*", "insert"), entry("*", "update"),
        ])

        result = cas.remove_controls("Public", [AccessControl(identity="*", permissions=["insert", "update"])])

        assert result.success
        assert mock_session.caslibs["Public"] == [entry("*", "readInfo"), entry("*", "select")]

    def test_remove_all_sends_empty_list(self, cas, mock_session):
        mock_session.add_caslib("Sales", [entry("Sales", "select"), entry("HR", "select")])

        result = cas.remove_all_controls("Sales")

        assert result.success
        delete = mock_session.calls_to("DELETE", f"{CONTROLS_PATH}/Sales")[-1]
        assert delete.body == []
        assert delete.params["sessionId"] == mock_session.cas_session_id
        assert mock_session.caslibs["Sales"] == []

    def test_rejected_update_is_reported_not_raised(self, cas, mock_session):
        mock_session.fail_on("PUT", f"{CONTROLS_PATH}/Public", 500)

        result = cas.apply_controls("Public", [AccessControl(identity="Sales", permissions=["select"])])

        assert not result.success
        assert result.data == TransactionState.CANCELLED
        assert "Public" in result.error

    def test_failed_start_is_reported_not_committed(self, cas, mock_session):
        mock_session.fail_on("POST", session_path(mock_session), 500)

        result = cas.apply_controls("Public", [AccessControl(identity="Sales", permissions=["select"])])

        assert not result.success
        assert result.data == TransactionState.FAILED
        assert mock_session.caslibs["Public"] == []

    def test_failed_library_lookup_raises(self, cas, mock_session):
        mock_session.fail_on("GET", "/casManagement/servers/cas-shared-default/caslibs", 500)

        with pytest.raises(ResponseDecodeError):
            cas.validate_library("Public")
