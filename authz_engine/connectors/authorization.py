"""
Authorization Rules Connector for the Authorization Model Engine.

Asserts the desired state of a single authorization rule. Every existing
rule matching the rule's principal and scope is deleted (the service allows
duplicates) and, if the rule should be enabled, exactly one new rule is
created. Repeated runs therefore never accumulate rules.
"""

import logging
from typing import List

from ..errors import RuleScopeError
from ..models import AuthorizationRule, PrincipalKind, RuleCollection
from .base_connector import BaseConnector, ConnectorResult

logger = logging.getLogger(__name__)

RULES_PATH = "/authorization/rules"
RULE_MEDIA_TYPE = "application/vnd.sas.authorization.rule+json"


def build_filter(rule: AuthorizationRule) -> str:
    """
    Build the rules search filter for a rule's principal and scope.

    Group rules are matched on the principal ID; rules for other principal
    types (user, guest, authenticatedUsers, ...) on the principal type.

    Raises:
        RuleScopeError: If the scope cannot be expressed for the principal type
    """
    if rule.principal_type == PrincipalKind.GROUP.value:
        key = f"eq(principal,'{rule.principal}')"
    else:
        key = f"eq(principalType,'{rule.principal_type}')"

    if rule.container_uri:
        return f"and({key},eq(containerUri,'{rule.container_uri}'))"
    if rule.object_uri:
        return f"and({key},eq(objectUri,'{rule.object_uri}'))"
    if rule.every_uri and rule.principal_type != PrincipalKind.GROUP.value:
        return key
    raise RuleScopeError(
        f"Either a container or object URI needs to be provided for "
        f"{rule.principal_type} {rule.principal}"
    )


class AuthorizationConnector(BaseConnector):
    """Connector for the authorization rules service."""

    def find_rules(self, rule: AuthorizationRule) -> List[str]:
        """
        Collect the IDs of all rules matching the rule's principal and scope.

        The IDs are also stored on `rule.rule_ids`.
        """
        payload, status = self.session.call(
            "GET", RULES_PATH,
            query=[("filter", build_filter(rule)), ("limit", self.limit)],
        )
        search = self._decode(RuleCollection, payload, RULES_PATH, status)
        rule.rule_ids = [item.id for item in search.items] if search.count else []
        if rule.rule_ids:
            logger.debug(f"Authorization rules exist: {rule.rule_ids}")
        else:
            logger.debug("Authorization rule does not exist")
        return rule.rule_ids

    def delete_rules(self, rule: AuthorizationRule) -> List[str]:
        """Delete every rule ID recorded on the rule; returns the IDs that failed."""
        failed = []
        for rule_id in rule.rule_ids:
            logger.info(f"Removing existing authorization rule {rule_id}")
            _, status = self.session.call("DELETE", f"{RULES_PATH}/{rule_id}")
            if not self._ok(status) and status != 404:
                failed.append(rule_id)
        rule.rule_ids = failed
        return failed

    def create_rule(self, rule: AuthorizationRule) -> ConnectorResult:
        payload, status = self.session.call(
            "POST", RULES_PATH, content_type=RULE_MEDIA_TYPE, body=rule.to_request_body()
        )
        if not self._ok(status):
            error = f"Error creating authorization rule for {rule.principal} (status {status})"
            logger.error(error)
            return ConnectorResult(False, error, error=error)

        if isinstance(payload, dict) and payload.get("id"):
            rule.rule_ids = [payload["id"]]
        logger.info(f"Created authorization rule for {rule.principal} on {rule.container_uri or rule.object_uri}")
        return ConnectorResult(True, f"Created rule for {rule.principal}", rule.rule_ids)

    def assert_rule(self, rule: AuthorizationRule) -> ConnectorResult:
        """
        Make the remote rules match `rule.enabled`.

        Args:
            rule: Desired rule

        Returns:
            ConnectorResult describing the outcome

        Raises:
            RuleScopeError: If the rule's scope is unusable
        """
        logger.debug(f"Asserting authorization rule {rule.model_dump(exclude={'rule_ids'})}")
        self.find_rules(rule)
        failed = self.delete_rules(rule)
        if failed:
            error = f"Could not delete existing authorization rules {failed}"
            logger.error(error)
            return ConnectorResult(False, error, error=error)

        if not rule.enabled:
            return ConnectorResult(True, f"No enabled rule remains for {rule.principal}")
        return self.create_rule(rule)
