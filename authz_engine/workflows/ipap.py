"""
Information Product Access Pattern (IPAP) Workflow.

Applies or removes an access pattern on content folders. The pattern file
is joined with the folders file on the pattern name; each joined row
grants one principal a set of permissions on one folder, either on the
folder's contents (object grant) or conveyed through the folder itself.
"""

import logging
from pathlib import Path
from typing import Dict, Union

from ..engine.pattern_mapper import join_rows
from ..ingestion import FOLDERS_SCHEMA, PATTERN_SCHEMA, read_csv
from ..models import WorkflowResult
from .base_workflow import BaseWorkflow, WorkflowStep

logger = logging.getLogger(__name__)


class IPAPWorkflow(BaseWorkflow):
    """Workflow for access patterns on content folders."""

    pattern = "ipap"

    def _backlog(self, pattern_file, folders_file):
        return join_rows(
            read_csv(folders_file, FOLDERS_SCHEMA),
            read_csv(pattern_file, PATTERN_SCHEMA),
            "Pattern",
        )

    def apply(self, pattern_file: Union[str, Path], folders_file: Union[str, Path],
              create_groups: bool = False, create_folders: bool = False) -> WorkflowResult:
        """
        Apply an access pattern to a list of folders.

        Args:
            pattern_file: Pattern CSV file
            folders_file: Folders CSV file (Directory, Pattern)
            create_groups: Create missing custom groups
            create_folders: Create missing folders, ancestors included

        Returns:
            WorkflowResult with execution details
        """
        self._start("apply", pattern=str(pattern_file), folders=str(folders_file),
                    create_groups=create_groups, create_folders=create_folders)
        created: Dict[str, bool] = {}

        for row in self._backlog(pattern_file, folders_file):
            group_id = row["Principal"]
            path = row["Directory"]

            if create_groups and group_id not in created:
                created[group_id] = self._create_group(group_id)

            if create_folders:
                step = WorkflowStep("folders", "create_folder", path)
                if not self._execute_step(step, lambda: self.folders.ensure_folder(path)):
                    continue
                folder = self.folders.index.get(path)
            else:
                folder = self.folders.validate_folder(path)

            if not folder.exists or not folder.uri:
                self._fail_step(
                    WorkflowStep("authorization", "enable_rule", path, {"principal": group_id}),
                    f"Folder {path} does not exist and should not be created",
                )
                continue

            rule = self.mapper.folder_rule(row, folder.uri, enabled=True)
            if rule is not None:
                self._assert_rule(rule, path)

        return self._finish()

    def remove(self, pattern_file: Union[str, Path], folders_file: Union[str, Path],
               delete_groups: bool = False, delete_folders: bool = False) -> WorkflowResult:
        """
        Remove an access pattern from a list of folders.

        Rows are processed in reverse order so nested folders go before
        their parents.

        Args:
            pattern_file: Pattern CSV file
            folders_file: Folders CSV file (Directory, Pattern)
            delete_groups: Delete the listed custom groups
            delete_folders: Delete the listed folders if they are empty

        Returns:
            WorkflowResult with execution details
        """
        self._start("remove", pattern=str(pattern_file), folders=str(folders_file),
                    delete_groups=delete_groups, delete_folders=delete_folders)
        deleted: Dict[str, bool] = {}
        # Folder URIs stay known after the folder itself was deleted by an earlier row
        known_uris: Dict[str, str] = {}

        for row in reversed(self._backlog(pattern_file, folders_file)):
            group_id = row["Principal"]
            path = row["Directory"]

            if delete_groups and group_id not in deleted:
                deleted[group_id] = self._delete_group(group_id)

            if delete_folders:
                step = WorkflowStep("folders", "delete_folder", path)
                self._execute_step(step, lambda: self.folders.delete_folder(path))
                folder = self.folders.index.get(path)
            else:
                folder = self.folders.validate_folder(path)

            if folder.uri:
                known_uris[path] = folder.uri
            uri = known_uris.get(path)
            if not uri:
                logger.debug(f"Folder {path} does not exist, no rule to disable for {group_id}")
                continue

            rule = self.mapper.folder_rule(row, uri, enabled=False)
            if rule is not None:
                self._assert_rule(rule, path)

        return self._finish()
