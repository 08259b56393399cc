"""
Identities Connector for the Authorization Model Engine.

Validates, creates, nests and deletes principals through the identities
service. Users are never created by this engine, only nested into groups.
"""

import logging
from typing import List

from ..engine.graph import Principal
from ..models import (
    SUPER_ADMIN_GROUP,
    WILDCARD_PRINCIPAL,
    IdentityCollection,
    PrincipalKind,
)
from .base_connector import BaseConnector, ConnectorResult

logger = logging.getLogger(__name__)

GROUPS_PATH = "/identities/groups"
GROUP_MEDIA_TYPE = "application/vnd.sas.identity.group+json"
DEFAULT_DESCRIPTION = "Automatically created by authzctl"


def _member_segment(kind: PrincipalKind) -> str:
    return "groupMembers" if kind == PrincipalKind.GROUP else "userMembers"


class IdentitiesConnector(BaseConnector):
    """Connector for users and custom groups."""

    def validate_principal(self, principal_id: str, kind: PrincipalKind = PrincipalKind.GROUP) -> bool:
        """
        Check whether a principal exists.

        Users and the wildcard principal are assumed to exist.

        Args:
            principal_id: Principal ID
            kind: user or group

        Returns:
            True if the principal exists
        """
        if PrincipalKind(kind) == PrincipalKind.USER or principal_id == WILDCARD_PRINCIPAL:
            return True

        logger.debug(f"Validating custom group {principal_id}")
        payload, status = self.session.call(
            "GET", GROUPS_PATH,
            query=[("filter", f"eq(id,'{principal_id}')"), ("limit", self.limit)],
        )
        search = self._decode(IdentityCollection, payload, GROUPS_PATH, status)
        exists = search.count > 0
        logger.debug(f"Custom group {principal_id} {'exists' if exists else 'does not exist'}")
        return exists

    def refresh(self, principal: Principal) -> bool:
        """Validate a principal and record the outcome on it."""
        principal.exists = self.validate_principal(principal.id, principal.kind)
        return principal.exists

    def create_principal(self, principal: Principal) -> ConnectorResult:
        """
        Create a group (if missing) and nest it under its parents.

        Users are not created; they are only nested under their parents.

        Args:
            principal: Principal with its declared parents

        Returns:
            ConnectorResult; failure if the create itself was rejected
        """
        if principal.is_group:
            if principal.exists is None:
                self.refresh(principal)
            if principal.exists:
                logger.debug(f"Custom group {principal.id} already exists")
                return ConnectorResult(True, f"Group {principal.id} already exists")

            logger.info(f"Creating custom group {principal.id} ({principal.name})")
            _, status = self.session.call(
                "POST", GROUPS_PATH, content_type=GROUP_MEDIA_TYPE,
                body={
                    "id": principal.id,
                    "name": principal.name or principal.id,
                    "description": principal.description or DEFAULT_DESCRIPTION,
                    "state": "active",
                },
            )
            if not self._ok(status):
                error = f"Creating custom group {principal.id} failed with status {status}"
                logger.error(error)
                return ConnectorResult(False, error, error=error)
            principal.exists = True

        errors = []
        for parent in principal.parents:
            result = self.nest_member(parent, principal)
            if not result:
                errors.append(result.error)

        if errors:
            return ConnectorResult(False, f"Created {principal.id} with nesting errors",
                                   error="; ".join(errors))
        return ConnectorResult(True, f"Created {principal.kind.value} {principal.id}")

    def nest_member(self, parent: Principal, member: Principal) -> ConnectorResult:
        """
        Add a member to a group.

        A parent group that does not exist is a logged error for this
        nesting only.
        """
        if parent.exists is None:
            self.refresh(parent)
        if not parent.exists:
            error = f"Parent group {parent.id} does not exist, cannot nest {member.id}"
            logger.error(error)
            return ConnectorResult(False, error, error=error)

        logger.info(f"Nesting {member.kind.value} {member.id} into group {parent.id}")
        _, status = self.session.call(
            "PUT", f"{GROUPS_PATH}/{parent.id}/{_member_segment(member.kind)}/{member.id}"
        )
        if not self._ok(status):
            error = f"Nesting {member.id} into {parent.id} failed with status {status}"
            logger.error(error)
            return ConnectorResult(False, error, error=error)
        return ConnectorResult(True, f"Nested {member.id} into {parent.id}")

    def remove_member(self, group_id: str, member: Principal) -> ConnectorResult:
        """Remove a single membership; the super-administrators group is never touched."""
        if group_id == SUPER_ADMIN_GROUP:
            logger.warning(f"Refusing to remove {member.id} from protected group {group_id}")
            return ConnectorResult(False, f"{group_id} is protected", error="protected group")

        logger.info(f"Deleting group membership {group_id} -> {member.id}")
        _, status = self.session.call(
            "DELETE", f"{GROUPS_PATH}/{group_id}/{_member_segment(member.kind)}/{member.id}"
        )
        if not self._ok(status):
            error = f"Removing {member.id} from {group_id} failed with status {status}"
            logger.error(error)
            return ConnectorResult(False, error, error=error)
        return ConnectorResult(True, f"Removed {member.id} from {group_id}")

    def delete_principal(self, principal_id: str) -> bool:
        """
        Delete a custom group.

        Args:
            principal_id: Group ID

        Returns:
            True if the group is gone afterwards
        """
        if principal_id == SUPER_ADMIN_GROUP:
            logger.warning(f"Refusing to delete protected group {principal_id}")
            return False

        if not self.validate_principal(principal_id):
            logger.debug(f"Custom group {principal_id} does not exist, nothing to delete")
            return True

        logger.info(f"Deleting custom group {principal_id}")
        _, status = self.session.call("DELETE", f"{GROUPS_PATH}/{principal_id}")
        if status > 399:
            logger.error(f"Deleting custom group {principal_id} failed with status {status}")
            return False
        return True

    def delete(self, principal: Principal) -> bool:
        """Delete a group node and mark it as not existing."""
        deleted = self.delete_principal(principal.id)
        if deleted:
            principal.exists = False
        return deleted

    def list_members(self, group_id: str) -> List[Principal]:
        """
        List the direct members of a group.

        Args:
            group_id: Group ID

        Returns:
            Member principals (fresh objects, not linked to any graph)
        """
        path = f"{GROUPS_PATH}/{group_id}/members"
        payload, status = self.session.call("GET", path, query=[("limit", self.limit)])
        if status == 404:
            return []
        search = self._decode(IdentityCollection, payload, path, status)
        if search.count == 0:
            logger.debug(f"Custom group {group_id} does not have any members")
            return []

        members = []
        for item in search.items:
            kind = PrincipalKind.GROUP if item.type == "group" else PrincipalKind.USER
            members.append(Principal(item.id, kind, item.name or "", item.name or "", exists=True))
        return members

    def list_groups(self, provider_id: str = "local") -> List[Principal]:
        """List all groups of an identity provider (custom groups by default)."""
        payload, status = self.session.call(
            "GET", GROUPS_PATH, query=[("providerId", provider_id), ("limit", self.limit)]
        )
        search = self._decode(IdentityCollection, payload, GROUPS_PATH, status)
        if search.count == 0:
            logger.debug("No custom groups exist")
            return []
        return [
            Principal(item.id, PrincipalKind.GROUP, item.name or "", item.name or "", exists=True)
            for item in search.items
        ]

    def delete_members(self, group_id: str) -> ConnectorResult:
        """Remove every direct member from a group (the group itself stays)."""
        if group_id == SUPER_ADMIN_GROUP:
            logger.warning(f"Refusing to empty protected group {group_id}")
            return ConnectorResult(False, f"{group_id} is protected", error="protected group")
        if not self.validate_principal(group_id):
            return ConnectorResult(True, f"Group {group_id} does not exist")

        logger.info(f"Deleting members from custom group {group_id}")
        errors = []
        for member in self.list_members(group_id):
            result = self.remove_member(group_id, member)
            if not result:
                errors.append(result.error)
        if errors:
            return ConnectorResult(False, f"Some members of {group_id} were not removed",
                                   error="; ".join(errors))
        return ConnectorResult(True, f"Removed all members from {group_id}")
