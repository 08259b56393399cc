"""
Tests for the pattern mapper.
"""

import pytest

from authz_engine.engine import PatternMapper, join_rows, split_permissions
from authz_engine.models import WILDCARD_PRINCIPAL


class TestJoinRows:
    """Test cases for the inner join."""

    def test_inner_join_on_pattern(self):
        folders = [
            {"Directory": "/Projects/Sales", "Pattern": "P1"},
            {"Directory": "/Projects/HR", "Pattern": "P2"},
            {"Directory": "/Projects/Orphan", "Pattern": "P9"},
        ]
        patterns = [
            {"Pattern": "P1", "Principal": "Sales", "GrantType": "conveyed", "Permissions": "read"},
            {"Pattern": "P1", "Principal": "Sales", "GrantType": "object", "Permissions": "read,update"},
            {"Pattern": "P2", "Principal": "HR", "GrantType": "object", "Permissions": "read"},
        ]

        joined = join_rows(folders, patterns)

        assert [(r["Directory"], r["GrantType"]) for r in joined] == [
            ("/Projects/Sales", "conveyed"),
            ("/Projects/Sales", "object"),
            ("/Projects/HR", "object"),
        ]

    def test_split_permissions(self):
        assert split_permissions("read, update,,delete") == ["read", "update", "delete"]
        assert split_permissions("") == []


class TestPatternMapper:
    """Test cases for PatternMapper."""

    @pytest.fixture
    def mapper(self):
        return PatternMapper()

    def test_object_grant_targets_folder_contents(self, mapper):
        row = {"Principal": "Sales", "GrantType": "object", "Permissions": "read,update"}

        rule = mapper.folder_rule(row, "/folders/folders/abc")

        assert rule.object_uri == "/folders/folders/abc/**"
        assert rule.container_uri is None
        assert rule.permissions == ["read", "update"]
        assert rule.enabled is True
        assert rule.description == "Automatically enabled by authzctl"

    def test_conveyed_grant_targets_folder(self, mapper):
        row = {"Principal": "Sales", "GrantType": "conveyed", "Permissions": "read"}

        rule = mapper.folder_rule(row, "/folders/folders/abc", enabled=False)

        assert rule.container_uri == "/folders/folders/abc"
        assert rule.enabled is False
        assert rule.description == "Automatically disabled by authzctl"

    def test_caslib_grant_does_not_apply_to_folders(self, mapper):
        row = {"Principal": "Sales", "GrantType": "caslib", "Permissions": "select"}

        assert mapper.folder_rule(row, "/folders/folders/abc") is None

    def test_matrix_rule(self, mapper):
        rule = mapper.matrix_rule({"URI": "/SASDrive/**", "Principal": "Analysts", "Permissions": "read"})

        assert rule.object_uri == "/SASDrive/**"
        assert rule.principal_type == "group"

    def test_caslib_backlog_groups_by_library(self, mapper):
        joined = [
            {"CASLIB": "Sales", "Principal": "SalesRead", "GrantType": "caslib", "Permissions": "readInfo,select"},
            {"CASLIB": "Sales", "Principal": "SalesWrite", "GrantType": "caslib", "Permissions": "insert"},
            {"CASLIB": "Sales", "Principal": "Ignored", "GrantType": "object", "Permissions": "read"},
            {"CASLIB": "HR", "Principal": "HRRead", "GrantType": "caslib", "Permissions": "select"},
        ]

        backlog = mapper.caslib_backlog(joined)

        assert list(backlog) == ["Sales", "HR"]
        assert [c.identity for c in backlog["Sales"]] == ["SalesRead", "SalesWrite"]
        assert backlog["Sales"][0].permissions == ["readInfo", "select"]

    def test_hardening_presets(self, mapper):
        assert "Public" in mapper.standard_caslibs
        assert len(mapper.standard_caslibs) == 10
        assert "/Projects" in mapper.default_folders
        assert "/SASDrive/**" in mapper.capabilities

        guest = mapper.guest_controls()[0]
        assert guest.identity == "guest" and guest.identity_type == "guest"
        assert "manageAccess" in guest.permissions

        wildcard = mapper.authenticated_users_controls()[0]
        assert wildcard.identity == WILDCARD_PRINCIPAL
        assert "select" not in wildcard.permissions
        assert "readInfo" not in wildcard.permissions

    def test_guest_rule_covers_every_uri(self, mapper):
        rule = mapper.guest_rule()

        assert rule.every_uri is True
        assert rule.principal_type == "guest"
        assert rule.enabled is False

    def test_missing_presets_file(self, tmp_path):
        mapper = PatternMapper(tmp_path)

        assert mapper.standard_caslibs == []
        assert mapper.capabilities == []
