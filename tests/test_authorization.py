"""
Tests for authorization rule assertion.
"""

import pytest

from authz_engine.connectors import AuthorizationConnector, build_filter
from authz_engine.errors import ResponseDecodeError, RuleScopeError
from authz_engine.models import AuthorizationRule


def group_rule(**kwargs):
    values = {
        "principal": "Sales",
        "permissions": ["read", "add"],
        "container_uri": "/folders/folders/abc",
        "description": "Automatically enabled by authzctl",
    }
    values.update(kwargs)
    return AuthorizationRule(**values)


class TestBuildFilter:
    """Test cases for the rules search filter."""

    def test_group_container_filter(self):
        assert build_filter(group_rule()) == \
            "and(eq(principal,'Sales'),eq(containerUri,'/folders/folders/abc'))"

    def test_group_object_filter(self):
        rule = group_rule(container_uri=None, object_uri="/folders/folders/abc/**")
        assert build_filter(rule) == \
            "and(eq(principal,'Sales'),eq(objectUri,'/folders/folders/abc/**'))"

    def test_principal_type_object_filter(self):
        rule = AuthorizationRule(
            principal="authenticatedUsers", principal_type="authenticatedUsers",
            object_uri="/SASDrive/**",
        )
        assert build_filter(rule) == \
            "and(eq(principalType,'authenticatedUsers'),eq(objectUri,'/SASDrive/**'))"

    def test_principal_type_container_filter(self):
        rule = AuthorizationRule(
            principal="authenticatedUsers", principal_type="authenticatedUsers",
            container_uri="/folders/folders/abc",
        )
        assert build_filter(rule) == \
            "and(eq(principalType,'authenticatedUsers'),eq(containerUri,'/folders/folders/abc'))"

    def test_principal_type_every_uri_filter(self):
        rule = AuthorizationRule(principal="guest", principal_type="guest", every_uri=True)
        assert build_filter(rule) == "eq(principalType,'guest')"

    def test_group_every_uri_is_a_scope_error(self):
        rule = AuthorizationRule(principal="Sales", principal_type="group", every_uri=True)
        with pytest.raises(RuleScopeError):
            build_filter(rule)

    def test_rule_without_scope_is_invalid(self):
        with pytest.raises(ValueError):
            AuthorizationRule(principal="Sales")

    def test_rule_with_two_scopes_is_invalid(self):
        with pytest.raises(ValueError):
            group_rule(object_uri="/folders/folders/abc/**")

    def test_request_body(self):
        body = group_rule(permissions=["read", " add ", ""]).to_request_body()

        assert body == {
            "permissions": ["read", "add"],
            "principal": "Sales",
            "principalType": "group",
            "type": "grant",
            "enabled": True,
            "description": "Automatically enabled by authzctl",
            "containerUri": "/folders/folders/abc",
        }


class TestAuthorizationConnector:
    """Test cases for AuthorizationConnector."""

    @pytest.fixture
    def authorization(self, mock_session):
        return AuthorizationConnector(mock_session)

    def test_assert_creates_rule(self, authorization, mock_session):
        result = authorization.assert_rule(group_rule())

        assert result.success
        rules = mock_session.rules_for(principal="Sales", containerUri="/folders/folders/abc")
        assert len(rules) == 1
        assert rules[0]["permissions"] == ["read", "add"]

    def test_assert_twice_leaves_exactly_one_rule(self, authorization, mock_session):
        """Test that repeated assertion never accumulates rules."""
        authorization.assert_rule(group_rule())
        authorization.assert_rule(group_rule(permissions=["read"]))

        rules = mock_session.rules_for(principal="Sales", containerUri="/folders/folders/abc")
        assert len(rules) == 1
        assert rules[0]["permissions"] == ["read"]

    def test_assert_replaces_duplicates(self, authorization, mock_session):
        """Test that every pre-existing duplicate is deleted."""
        for _ in range(3):
            mock_session.add_rule({
                "principal": "Sales", "principalType": "group",
                "containerUri": "/folders/folders/abc", "permissions": ["read"],
            })

        authorization.assert_rule(group_rule())

        assert len(mock_session.rules_for(principal="Sales")) == 1
        assert len(mock_session.calls_to("DELETE", "/authorization/rules/")) == 3

    def test_disabled_rule_removes_without_creating(self, authorization, mock_session):
        mock_session.add_rule({
            "principal": "Sales", "principalType": "group",
            "containerUri": "/folders/folders/abc", "permissions": ["read"],
        })

        result = authorization.assert_rule(group_rule(enabled=False))

        assert result.success
        assert mock_session.rules_for(principal="Sales") == []
        assert mock_session.calls_to("POST", "/authorization/rules") == []

    def test_other_scopes_are_untouched(self, authorization, mock_session):
        mock_session.add_rule({
            "principal": "Sales", "principalType": "group",
            "containerUri": "/folders/folders/other", "permissions": ["read"],
        })

        authorization.assert_rule(group_rule(enabled=False))

        assert len(mock_session.rules_for(containerUri="/folders/folders/other")) == 1

    def test_every_uri_rule_clears_all_rules_of_a_principal_type(self, authorization, mock_session):
        for uri in ("/a", "/b"):
            mock_session.add_rule({"principal": "guest", "principalType": "guest", "objectUri": uri})
        mock_session.add_rule({"principal": "Sales", "principalType": "group", "objectUri": "/a"})

        authorization.assert_rule(
            AuthorizationRule(principal="guest", principal_type="guest", enabled=False, every_uri=True)
        )

        assert mock_session.rules_for(principalType="guest") == []
        assert len(mock_session.rules_for(principalType="group")) == 1

    def test_failed_delete_does_not_create(self, authorization, mock_session):
        rule_id = mock_session.add_rule({
            "principal": "Sales", "principalType": "group",
            "containerUri": "/folders/folders/abc", "permissions": ["read"],
        })
        mock_session.fail_on("DELETE", f"/authorization/rules/{rule_id}", 500)

        result = authorization.assert_rule(group_rule())

        assert not result.success
        assert rule_id in result.error
        assert mock_session.calls_to("POST", "/authorization/rules") == []

    def test_create_failure_is_reported(self, authorization, mock_session):
        mock_session.fail_on("POST", "/authorization/rules", 400)

        result = authorization.assert_rule(group_rule())

        assert not result.success
        assert result.error

    def test_failed_lookup_is_not_an_empty_result(self, authorization, mock_session):
        """Test that an error status on the rules search never reads as no matches."""
        authorization.assert_rule(group_rule())
        mock_session.fail_on("GET", "/authorization/rules", 500)

        with pytest.raises(ResponseDecodeError) as excinfo:
            authorization.assert_rule(group_rule())

        assert excinfo.value.status == 500
        assert len(mock_session.rules_for(principal="Sales", containerUri="/folders/folders/abc")) == 1
        assert len(mock_session.calls_to("POST", "/authorization/rules")) == 1
