"""
Hardening Workflow for the Authorization Model Engine.

Reduces the default permissions of a fresh deployment: removes everything
granted to guest, trims what authenticated users get by default, and
switches off sharing and resharing. The affected libraries, permissions,
folders and capability URIs come from hardening.yaml.
"""

import logging
from typing import List

from ..models import AccessControl, WorkflowResult
from .base_workflow import BaseWorkflow, WorkflowStep

logger = logging.getLogger(__name__)


class HardenWorkflow(BaseWorkflow):
    """Workflow for hardening default permissions."""

    pattern = "harden"

    def _remove_standard_controls(self, controls: List[AccessControl]):
        for library in self.mapper.standard_caslibs:
            if not self.cas.validate_library(library):
                logger.warning(f"Standard CAS library {library} does not exist, skipping")
                continue
            step = WorkflowStep(
                "cas", "remove_controls", library,
                {"identities": [c.identity for c in controls]},
            )
            self._execute_step(step, lambda: self.cas.remove_controls(library, controls))

    def guest(self) -> WorkflowResult:
        """Remove all rules of the guest principal type and its CAS access controls."""
        self._start("guest")

        logger.info("Removing all permissions for guest")
        self._assert_rule(self.mapper.guest_rule(), "*")

        logger.info("Removing all CAS access controls for guest")
        self._remove_standard_controls(self.mapper.guest_controls())

        return self._finish()

    def authenticated_users(self) -> WorkflowResult:
        """
        Restrict the default permissions of authenticated users.

        Capability rules are deleted (grant them explicitly to nominated
        groups first), wildcard CAS access above read-only is removed from
        the standard libraries, and the default folder rules are deleted.

        Returns:
            WorkflowResult with execution details
        """
        self._start("authenticated_users")

        logger.info(
            "Deleting capability authorization rules for authenticatedUsers. "
            "Ensure these capabilities are granted explicitly to nominated principals"
        )
        for uri in self.mapper.capabilities:
            self._assert_rule(self.mapper.authenticated_users_rule(object_uri=uri), uri)

        logger.info("Reducing default CAS access controls for authenticatedUsers to read-only or less")
        self._remove_standard_controls(self.mapper.authenticated_users_controls())

        logger.info("Removing default content folder permissions for authenticatedUsers")
        for path in self.mapper.default_folders:
            folder = self.folders.validate_folder(path)
            if not folder.exists:
                logger.debug(f"Default folder {path} does not exist, skipping")
                continue
            self._assert_rule(self.mapper.authenticated_users_rule(container_uri=folder.uri), path)

        return self._finish()

    def sharing(self) -> WorkflowResult:
        """Disable sharing and resharing."""
        self._start("sharing")

        logger.info("Disabling sharing and resharing")
        for result in self.configuration.disable_sharing():
            self._record(WorkflowStep("configuration", "disable_sharing", result.data or ""), result)

        return self._finish()
