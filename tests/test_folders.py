"""
Tests for the folders connector and folder index.
"""

import pytest

from authz_engine.connectors import FolderIndex, FoldersConnector
from authz_engine.connectors.folders import parent_path
from authz_engine.errors import ResponseDecodeError


class TestFolderIndex:
    """Test cases for folder paths and the index."""

    @pytest.mark.parametrize("path,parent", [
        ("/Projects", None),
        ("/Projects/Sales", "/Projects"),
        ("/Projects/Sales/2024/", "/Projects/Sales"),
    ])
    def test_parent_path(self, path, parent):
        assert parent_path(path) == parent

    def test_index_links_parents_once(self):
        index = FolderIndex()

        leaf = index.get("/Projects/Sales/Reports")

        assert leaf.depth == 4
        assert leaf.name == "Reports"
        assert leaf.parent is index.get("/Projects/Sales")
        assert leaf.parent.parent is index.get("/Projects")
        assert index.get("/Projects").parent is None
        assert "/Projects/Sales" in index


class TestFoldersConnector:
    """Test cases for FoldersConnector."""

    @pytest.fixture
    def folders(self, mock_session):
        return FoldersConnector(mock_session)

    def test_validate_existing_folder(self, folders, mock_session):
        uri = mock_session.add_folder("/Projects")

        folder = folders.validate_folder("/Projects")

        assert folder.exists is True
        assert folder.uri == uri

    def test_validate_missing_folder(self, folders):
        folder = folders.validate_folder("/Nowhere")

        assert folder.exists is False
        assert folder.uri == ""

    def test_create_top_level_folder_has_no_parent(self, folders, mock_session):
        """Test that folders directly under root are created with parentFolderUri=none."""
        result = folders.create_folder("/Projects")

        assert result.success
        post = mock_session.calls_to("POST", "/folders/folders")[-1]
        assert post.params["parentFolderUri"] == "none"
        assert post.body == {"name": "Projects", "type": "folder"}
        assert result.data.uri.startswith("/folders/folders/")

    def test_create_nested_folder_requires_parent(self, folders, mock_session):
        """Test that a missing parent aborts only that folder."""
        result = folders.create_folder("/Projects/Sales")

        assert not result.success
        assert "Parent folder must exist first" in result.error
        assert mock_session.calls_to("POST", "/folders/folders") == []

    def test_create_nested_folder_under_existing_parent(self, folders, mock_session):
        parent_uri = mock_session.add_folder("/Projects")

        result = folders.create_folder("/Projects/Sales")

        assert result.success
        post = mock_session.calls_to("POST", "/folders/folders")[-1]
        assert post.params["parentFolderUri"] == parent_uri

    def test_create_existing_folder_is_noop(self, folders, mock_session):
        mock_session.add_folder("/Projects")

        result = folders.create_folder("/Projects")

        assert result.success
        assert mock_session.calls_to("POST", "/folders/folders") == []

    def test_ensure_folder_creates_ancestors(self, folders, mock_session):
        result = folders.ensure_folder("/Projects/Sales/Reports")

        assert result.success
        paths = sorted(f["path"] for f in mock_session.folders.values())
        assert paths == ["/Projects", "/Projects/Sales", "/Projects/Sales/Reports"]

    def test_delete_folder_keeps_uri(self, folders, mock_session):
        uri = mock_session.add_folder("/Projects")

        result = folders.delete_folder("/Projects")

        assert result.success
        assert result.data.exists is False
        assert result.data.uri == uri
        assert mock_session.folders == {}

    def test_delete_non_empty_folder_is_refused(self, folders, mock_session):
        mock_session.add_folder("/Projects/Sales")

        result = folders.delete_folder("/Projects")

        assert not result.success
        assert len(mock_session.folders) == 2

    def test_recursive_delete(self, folders, mock_session):
        mock_session.add_folder("/Projects/Sales")

        result = folders.delete_folder("/Projects", recursive=True)

        assert result.success
        assert mock_session.folders == {}

    def test_delete_missing_folder_is_noop(self, folders, mock_session):
        result = folders.delete_folder("/Nowhere")

        assert result.success
        assert mock_session.calls_to("DELETE", "/folders/folders") == []

    def test_only_not_found_means_missing(self, folders, mock_session):
        """Test that a rejected lookup is an error, not a missing folder."""
        mock_session.add_folder("/Projects")
        mock_session.fail_on("GET", "/folders/folders/@item", 401)

        with pytest.raises(ResponseDecodeError) as excinfo:
            folders.validate_folder("/Projects")

        assert excinfo.value.status == 401
        assert folders.index.get("/Projects").exists is None
        assert mock_session.calls_to("POST", "/folders/folders") == []
