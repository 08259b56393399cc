"""
Custom Groups Workflow for the Authorization Model Engine.

Applies, removes and synchronizes a custom group structure described by a
groups file (ParentGroupID, GroupID, GroupName, UserID).
"""

import logging
from pathlib import Path
from typing import List, Union

from ..engine.graph import PrincipalGraph
from ..engine.reconciler import ReconcileAction, StateReconciler
from ..ingestion import GROUPS_SCHEMA, read_csv
from ..models import WorkflowResult
from .base_workflow import BaseWorkflow, WorkflowStep

logger = logging.getLogger(__name__)


class GroupsWorkflow(BaseWorkflow):
    """Workflow for custom group structures."""

    pattern = "groups"

    def apply(self, groups_file: Union[str, Path]) -> WorkflowResult:
        """
        Create the groups of a structure and nest their members.

        Groups are processed parents first. Existing groups and memberships
        are left as they are; nothing is removed.

        Args:
            groups_file: Groups CSV file

        Returns:
            WorkflowResult with execution details
        """
        self._start("apply", groups=str(groups_file))
        target = PrincipalGraph.from_rows(read_csv(groups_file, GROUPS_SCHEMA))

        for group in target.ordered_groups():
            existed = self.identities.refresh(group)
            step = WorkflowStep("identities", "create_group", group.id, {"name": group.name})
            if not self._execute_step(step, lambda: self.identities.create_principal(group)):
                continue

            # create_principal only nests groups it actually created
            if existed:
                for parent in group.parents:
                    step = WorkflowStep("identities", "nest_member", parent.id, {"member": group.id})
                    self._execute_step(step, lambda: self.identities.nest_member(parent, group))

            for member in group.members:
                if member.is_group:
                    continue
                step = WorkflowStep("identities", "nest_member", group.id, {"member": member.id})
                self._execute_step(step, lambda: self.identities.nest_member(group, member))

        return self._finish()

    def remove(self, groups_file: Union[str, Path], members_only: bool = False) -> WorkflowResult:
        """
        Delete the groups of a structure, or only empty them.

        Args:
            groups_file: Groups CSV file
            members_only: Remove only the members of each group

        Returns:
            WorkflowResult with execution details
        """
        self._start("remove", groups=str(groups_file), members_only=members_only)
        rows = read_csv(groups_file, GROUPS_SCHEMA)

        seen = set()
        for row in rows:
            group_id = (row.get("GroupID") or "").strip()
            if not group_id or group_id in seen:
                continue
            seen.add(group_id)

            if members_only:
                step = WorkflowStep("identities", "delete_members", group_id)
                self._execute_step(step, lambda: self.identities.delete_members(group_id))
            else:
                self._delete_group(group_id)

        return self._finish()

    def sync(self, groups_file: Union[str, Path], delete_groups: bool = False,
             dry_run: bool = False) -> WorkflowResult:
        """
        Converge the custom groups of the platform to a structure.

        Args:
            groups_file: Groups CSV file describing the desired state
            delete_groups: Delete custom groups that are not in the file
            dry_run: Only plan; report the actions without applying them

        Returns:
            WorkflowResult whose actions are the reconcile actions
        """
        self._start("sync", groups=str(groups_file), delete_groups=delete_groups, dry_run=dry_run)
        target = PrincipalGraph.from_rows(read_csv(groups_file, GROUPS_SCHEMA))
        current = PrincipalGraph.from_directory(self.identities)

        reconciler = StateReconciler(self.identities, delete_groups=delete_groups)
        actions = reconciler.plan(target, current)
        if dry_run:
            logger.info(f"Dry run: {sum(1 for a in actions if a.mutating)} changes planned")
        else:
            reconciler.apply(actions)

        self._record_actions(actions)
        return self._finish()

    def _record_actions(self, actions: List[ReconcileAction]):
        for action in actions:
            step = WorkflowStep(
                "identities",
                action.kind.value,
                action.group.id,
                {"member": action.member.id} if action.member else {},
            )
            self.steps.append(step)
            if action.success is True:
                step.mark_success()
            elif action.success is False:
                step.mark_failure(action.error or "Unknown error")
                self.errors.append(f"identities.{action.kind.value}({action.group.id}): {step.error}")
