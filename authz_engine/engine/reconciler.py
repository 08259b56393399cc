"""
State Reconciler for the Authorization Model Engine.

Diffs a target principal graph (desired state) against a current principal
graph (observed state) and converges the identities service towards the
target by creating groups, nesting members, removing memberships and
optionally deleting groups.

Reconciliation is not transactional across the graph: each action is
independent, and a failed action is recorded while the remaining actions
still run.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from ..models import SUPER_ADMIN_GROUP
from .graph import Principal, PrincipalGraph

logger = logging.getLogger(__name__)


class ActionKind(str, Enum):
    CREATE_GROUP = "create_group"
    NEST_MEMBER = "nest_member"
    REMOVE_MEMBER = "remove_member"
    DELETE_GROUP = "delete_group"
    KEEP_GROUP = "keep_group"


class ReconcileAction:
    """One planned change to the identities service."""

    def __init__(self, kind: ActionKind, group: Principal, member: Optional[Principal] = None):
        self.kind = kind
        self.group = group
        self.member = member
        self.success: Optional[bool] = None
        self.error: Optional[str] = None

    @property
    def mutating(self) -> bool:
        return self.kind != ActionKind.KEEP_GROUP

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.kind.value,
            "group": self.group.id,
            "member": self.member.id if self.member else None,
            "member_type": self.member.kind.value if self.member else None,
            "success": self.success,
            "error": self.error,
        }

    def __repr__(self):
        member = f" -> {self.member.id}" if self.member else ""
        return f"<{self.kind.value} {self.group.id}{member}>"


class StateReconciler:
    """
    Converges group structure and memberships to a target graph.

    The super-administrators group is never deleted and never loses members.
    """

    def __init__(self, identities: Any, delete_groups: bool = False):
        """
        Initialize the reconciler.

        Args:
            identities: IdentitiesConnector used to apply actions
            delete_groups: Delete current groups absent from the target
        """
        self.identities = identities
        self.delete_groups = delete_groups

    def plan(self, target: PrincipalGraph, current: PrincipalGraph) -> List[ReconcileAction]:
        """
        Compute the actions that converge `current` to `target`.

        Args:
            target: Desired state
            current: Observed state

        Returns:
            Ordered list of actions (creations parents first)
        """
        actions: List[ReconcileAction] = []

        for group in target.groups.values():
            group.exists = group.id in current
        for user in target.users.values():
            user.exists = True

        for group in target.ordered_groups():
            if group.id not in current:
                actions.append(ReconcileAction(ActionKind.CREATE_GROUP, group))
                for member in group.members:
                    # New member groups nest themselves when they are created
                    if member.is_group and member.id not in current:
                        continue
                    actions.append(ReconcileAction(ActionKind.NEST_MEMBER, group, member))
                continue

            current_ids = set(current.groups[group.id].member_ids())
            for member in group.members:
                if member.id in current_ids:
                    continue
                if member.is_group and member.id not in current:
                    continue
                actions.append(ReconcileAction(ActionKind.NEST_MEMBER, group, member))

        for group in current.groups.values():
            if group.id not in target:
                if self.delete_groups and group.id != SUPER_ADMIN_GROUP:
                    actions.append(ReconcileAction(ActionKind.DELETE_GROUP, group))
                else:
                    actions.append(ReconcileAction(ActionKind.KEEP_GROUP, group))
                continue

            if group.id == SUPER_ADMIN_GROUP:
                continue
            target_ids = set(target.groups[group.id].member_ids())
            for member in group.members:
                if member.id not in target_ids:
                    actions.append(ReconcileAction(ActionKind.REMOVE_MEMBER, group, member))

        return actions

    def apply(self, actions: List[ReconcileAction]) -> List[ReconcileAction]:
        """
        Execute planned actions in order.

        Item-level failures are recorded on each action and do not stop the
        pass; fatal errors (transport, decode) propagate.
        """
        for action in actions:
            self._apply_action(action)
            if action.success is False:
                logger.error(f"Reconcile action {action!r} failed: {action.error}")
        return actions

    def reconcile(self, target: PrincipalGraph, current: PrincipalGraph) -> List[ReconcileAction]:
        """Plan and apply in one pass."""
        actions = self.plan(target, current)
        logger.info(
            f"Reconciling {len(target)} target groups against {len(current)} current groups: "
            f"{sum(1 for a in actions if a.mutating)} changes"
        )
        return self.apply(actions)

    def _apply_action(self, action: ReconcileAction):
        if action.kind == ActionKind.CREATE_GROUP:
            result = self.identities.create_principal(action.group)
        elif action.kind == ActionKind.NEST_MEMBER:
            result = self.identities.nest_member(action.group, action.member)
        elif action.kind == ActionKind.REMOVE_MEMBER:
            result = self.identities.remove_member(action.group.id, action.member)
        elif action.kind == ActionKind.DELETE_GROUP:
            action.success = self.identities.delete(action.group)
            if not action.success:
                action.error = f"Group {action.group.id} was not deleted"
            return
        else:
            logger.info(f"The group {action.group.id} no longer exists in the desired target state, leaving it")
            action.success = True
            return

        action.success = result.success
        action.error = result.error
