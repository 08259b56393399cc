"""
Capability Matrix Workflow.

Applies or removes a capability matrix: each row grants one group a set of
permissions on one object URI.
"""

import logging
from pathlib import Path
from typing import Set, Union

from ..ingestion import MATRIX_SCHEMA, read_csv
from ..models import WorkflowResult
from .base_workflow import BaseWorkflow

logger = logging.getLogger(__name__)


class MatrixWorkflow(BaseWorkflow):
    """Workflow for capability matrices."""

    pattern = "matrix"

    def apply(self, matrix_file: Union[str, Path], create_groups: bool = False) -> WorkflowResult:
        """
        Enable one rule per matrix row.

        Args:
            matrix_file: Matrix CSV file (URI, Principal, Permissions)
            create_groups: Create missing custom groups

        Returns:
            WorkflowResult with execution details
        """
        self._start("apply", matrix=str(matrix_file), create_groups=create_groups)
        created: Set[str] = set()

        for row in read_csv(matrix_file, MATRIX_SCHEMA):
            group_id = row["Principal"]
            if create_groups and group_id not in created:
                created.add(group_id)
                self._create_group(group_id)
            if not row.get("URI"):
                logger.error(f"Matrix row for {group_id} has no URI, skipping")
                continue
            self._assert_rule(self.mapper.matrix_rule(row, enabled=True), row["URI"])

        return self._finish()

    def remove(self, matrix_file: Union[str, Path], delete_groups: bool = False) -> WorkflowResult:
        """Disable the rule of every matrix row and optionally delete its group."""
        self._start("remove", matrix=str(matrix_file), delete_groups=delete_groups)
        deleted: Set[str] = set()

        for row in read_csv(matrix_file, MATRIX_SCHEMA):
            group_id = row["Principal"]
            if delete_groups and group_id not in deleted:
                deleted.add(group_id)
                self._delete_group(group_id)
            if not row.get("URI"):
                logger.error(f"Matrix row for {group_id} has no URI, skipping")
                continue
            self._assert_rule(self.mapper.matrix_rule(row, enabled=False), row["URI"])

        return self._finish()
