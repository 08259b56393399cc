"""
Folders Connector for the Authorization Model Engine.

Validates, creates and deletes content folders addressed by slash-delimited
paths. A FolderIndex built once per run maps each path to its Folder node so
parents are resolved by lookup rather than by re-validating every prefix.
"""

import logging
from typing import Dict, Optional

from ..models import FolderItem
from .base_connector import BaseConnector, ConnectorResult

logger = logging.getLogger(__name__)

FOLDERS_PATH = "/folders/folders"


def parent_path(path: str) -> Optional[str]:
    """Return the parent path of a folder path, or None directly under root."""
    elements = path.rstrip("/").split("/")
    if len(elements) < 3:
        return None
    return "/".join(elements[:-1])


class Folder:
    """A content folder. `parent` is a relation only, never owned."""

    def __init__(self, path: str, uri: str = "", exists: Optional[bool] = None):
        self.path = path.rstrip("/") or "/"
        self.uri = uri
        self.exists = exists
        self.parent: Optional["Folder"] = None

    @property
    def name(self) -> str:
        return self.path.split("/")[-1]

    @property
    def depth(self) -> int:
        """Number of path elements including the empty root element."""
        return len(self.path.split("/"))

    def __repr__(self):
        return f"Folder({self.path!r}, uri={self.uri!r})"


class FolderIndex:
    """Path -> Folder index for one run."""

    def __init__(self):
        self._folders: Dict[str, Folder] = {}

    def __contains__(self, path: str) -> bool:
        return path.rstrip("/") in self._folders

    def get(self, path: str) -> Folder:
        """Get or create the node for a path, linking it to its parent node."""
        key = path.rstrip("/") or "/"
        folder = self._folders.get(key)
        if folder is None:
            folder = Folder(key)
            self._folders[key] = folder
            parent = parent_path(key)
            if parent is not None:
                folder.parent = self.get(parent)
        return folder


class FoldersConnector(BaseConnector):
    """Connector for content folders."""

    def __init__(self, session, index: Optional[FolderIndex] = None):
        super().__init__(session)
        self.index = index or FolderIndex()

    def validate_folder(self, path: str) -> Folder:
        """
        Resolve a folder path against the folders service.

        Args:
            path: Folder path, e.g. /Projects/Sales

        Returns:
            The indexed Folder with `exists` and `uri` set

        Raises:
            ResponseDecodeError: If the lookup fails with a status other than 404
        """
        folder = self.index.get(path)
        logger.debug(f"Validating custom folder {folder.path}")
        payload, status = self.session.call(
            "GET", f"{FOLDERS_PATH}/@item",
            query=[("path", folder.path), ("limit", self.limit)],
        )
        if status == 404:
            folder.exists = False
            folder.uri = ""
            logger.debug(f"Custom folder {folder.path} does not exist")
            return folder

        item = self._decode(FolderItem, payload, f"{FOLDERS_PATH}/@item", status)
        folder.exists = True
        folder.uri = f"{FOLDERS_PATH}/{item.id}"
        logger.debug(f"Custom folder {folder.path} exists at {folder.uri}")
        return folder

    def create_folder(self, path: str, parent: Optional[Folder] = None) -> ConnectorResult:
        """
        Create a folder if it does not exist.

        Folders directly under root need no parent; deeper folders require
        their parent to be resolved already.

        Args:
            path: Folder path
            parent: Resolved parent folder (defaults to the indexed parent)

        Returns:
            ConnectorResult with the Folder as data
        """
        folder = self.index.get(path)
        if folder.exists is None:
            self.validate_folder(folder.path)
        if folder.exists:
            logger.debug(f"Custom folder {folder.path} not created as it already exists")
            return ConnectorResult(True, f"Folder {folder.path} already exists", folder)

        if folder.depth < 3:
            parent_uri = "none"
        else:
            parent = parent or folder.parent
            if parent is not None and parent.exists is None:
                self.validate_folder(parent.path)
            if parent is None or not parent.exists or not parent.uri:
                error = f"Parent folder must exist first: {folder.path}"
                logger.error(error)
                return ConnectorResult(False, error, folder, error=error)
            parent_uri = parent.uri

        logger.info(f"Creating custom folder {folder.path}")
        payload, status = self.session.call(
            "POST", FOLDERS_PATH,
            query=[("parentFolderUri", parent_uri), ("limit", self.limit)],
            body={"name": folder.name, "type": "folder"},
        )
        if not self._ok(status):
            error = f"Creating custom folder {folder.path} failed with status {status}"
            logger.error(error)
            return ConnectorResult(False, error, folder, error=error)

        item = self._decode(FolderItem, payload, FOLDERS_PATH)
        folder.exists = True
        folder.uri = f"{FOLDERS_PATH}/{item.id}"
        return ConnectorResult(True, f"Created folder {folder.path}", folder)

    def ensure_folder(self, path: str) -> ConnectorResult:
        """Create a folder and any missing ancestors, root first."""
        folder = self.index.get(path)
        if folder.parent is not None:
            result = self.ensure_folder(folder.parent.path)
            if not result:
                return result
        return self.create_folder(folder.path)

    def delete_folder(self, path: str, recursive: bool = False) -> ConnectorResult:
        """
        Delete a folder if it exists.

        Args:
            path: Folder path
            recursive: Also delete contents; otherwise the service refuses
                       non-empty folders

        Returns:
            ConnectorResult with the Folder as data (its uri as it was)
        """
        folder = self.validate_folder(path)
        if not folder.exists:
            logger.debug(f"Cannot delete custom folder {folder.path} as it does not exist")
            return ConnectorResult(True, f"Folder {folder.path} does not exist", folder)

        logger.info(f"{'Recursively deleting' if recursive else 'Deleting'} custom folder {folder.path}")
        query = [("recursive", "true")] if recursive else None
        _, status = self.session.call("DELETE", folder.uri, query=query)
        if not self._ok(status):
            error = f"Deleting custom folder {folder.path} failed with status {status}"
            logger.error(error)
            return ConnectorResult(False, error, folder, error=error)

        folder.exists = False
        return ConnectorResult(True, f"Deleted folder {folder.path}", folder)
