"""
Data Access Pattern (DAP) Workflow.

Applies or removes an access pattern on CAS libraries. Rows of the pattern
file with the caslib grant type are joined with the CAS libraries file and
collected per library; each library's direct access controls are then
replaced (apply) or cleared (remove) in one transaction.
"""

import logging
from pathlib import Path
from typing import Dict, List, Set, Union

from ..engine.pattern_mapper import join_rows
from ..ingestion import CASLIBS_SCHEMA, PATTERN_SCHEMA, read_csv
from ..models import AccessControl, WorkflowResult
from .base_workflow import BaseWorkflow, WorkflowStep

logger = logging.getLogger(__name__)


class DAPWorkflow(BaseWorkflow):
    """Workflow for access patterns on CAS libraries."""

    pattern = "dap"

    def _backlog(self, pattern_file, caslibs_file) -> Dict[str, List[AccessControl]]:
        joined = join_rows(
            read_csv(caslibs_file, CASLIBS_SCHEMA),
            read_csv(pattern_file, PATTERN_SCHEMA),
            "Pattern",
        )
        return self.mapper.caslib_backlog(joined)

    def _validate(self, library: str, operation: str) -> bool:
        if self.cas.validate_library(library):
            return True
        self._fail_step(
            WorkflowStep("cas", operation, library),
            f"CAS library {library} does not exist",
        )
        return False

    def apply(self, pattern_file: Union[str, Path], caslibs_file: Union[str, Path],
              create_groups: bool = False) -> WorkflowResult:
        """
        Replace the direct access controls of each listed CAS library.

        Args:
            pattern_file: Pattern CSV file
            caslibs_file: CAS libraries CSV file (CASLIB, Pattern)
            create_groups: Create missing custom groups

        Returns:
            WorkflowResult with execution details
        """
        self._start("apply", pattern=str(pattern_file), caslibs=str(caslibs_file),
                    create_groups=create_groups)
        created: Set[str] = set()

        for library, controls in self._backlog(pattern_file, caslibs_file).items():
            if not self._validate(library, "apply_controls"):
                continue

            if create_groups:
                for control in controls:
                    if control.identity not in created:
                        created.add(control.identity)
                        self._create_group(control.identity)

            step = WorkflowStep(
                "cas", "apply_controls", library,
                {"identities": [c.identity for c in controls]},
            )
            self._execute_step(step, lambda: self.cas.apply_controls(library, controls))

        return self._finish()

    def remove(self, pattern_file: Union[str, Path], caslibs_file: Union[str, Path],
               delete_groups: bool = False) -> WorkflowResult:
        """
        Remove every direct access control from each listed CAS library.

        Args:
            pattern_file: Pattern CSV file
            caslibs_file: CAS libraries CSV file (CASLIB, Pattern)
            delete_groups: Delete the listed custom groups

        Returns:
            WorkflowResult with execution details
        """
        self._start("remove", pattern=str(pattern_file), caslibs=str(caslibs_file),
                    delete_groups=delete_groups)
        deleted: Set[str] = set()

        for library, controls in self._backlog(pattern_file, caslibs_file).items():
            if not self._validate(library, "remove_all_controls"):
                continue

            if delete_groups:
                for control in controls:
                    if control.identity not in deleted:
                        deleted.add(control.identity)
                        self._delete_group(control.identity)

            step = WorkflowStep("cas", "remove_all_controls", library)
            self._execute_step(step, lambda: self.cas.remove_all_controls(library))

        return self._finish()
