"""
Pattern Mapper for the Authorization Model Engine.

This module turns access pattern definitions into authorization rules and
CAS access control declarations. A pattern file lists, per named pattern,
which principal gets which permissions and how they are granted; a folders
or CAS libraries file assigns patterns to resources. The two are joined on
the pattern name.

It also reads the hardening presets (standard CAS libraries, the guest and
authenticated users permission sets, default folders and capability URIs)
from hardening.yaml.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import yaml

from ..models import AccessControl, AuthorizationRule, GrantType, WILDCARD_PRINCIPAL

logger = logging.getLogger(__name__)

ENABLED_DESCRIPTION = "Automatically enabled by authzctl"
DISABLED_DESCRIPTION = "Automatically disabled by authzctl"
REMOVED_DESCRIPTION = "Automatically removed by authzctl"

GUEST = "guest"
AUTHENTICATED_USERS = "authenticatedUsers"


def join_rows(left: Sequence[Mapping[str, str]], right: Sequence[Mapping[str, str]],
              key: str = "Pattern") -> List[Dict[str, str]]:
    """
    Inner-join two row lists on a key column.

    Rows are emitted in left order, and for each left row in right order.
    Values of the right row win on overlapping columns.
    """
    joined = []
    for row_left in left:
        for row_right in right:
            if row_right.get(key) == row_left.get(key):
                joined.append({**row_left, **row_right})
    logger.debug(f"Joined rows on {key}: {len(joined)} matches")
    return joined


def split_permissions(cell: str) -> List[str]:
    """Split a comma-separated permissions cell."""
    return [p.strip() for p in (cell or "").split(",") if p.strip()]


class PatternMapper:
    """
    Maps pattern, folder, CAS library and matrix rows to access definitions.

    Reads hardening presets from hardening.yaml in the engine directory
    unless another directory is given.
    """

    def __init__(self, config_dir: Optional[Union[str, Path]] = None):
        """
        Initialize the pattern mapper.

        Args:
            config_dir: Directory containing hardening.yaml
                       Defaults to the engine directory
        """
        if config_dir is None:
            config_dir = Path(__file__).parent
        else:
            config_dir = Path(config_dir)

        self.config_dir = config_dir
        self.hardening: Dict[str, Any] = {}

        self._load_presets()

    def _load_presets(self):
        presets_file = self.config_dir / "hardening.yaml"
        if presets_file.exists():
            with open(presets_file, encoding='utf-8') as f:
                self.hardening = yaml.safe_load(f) or {}
            logger.debug(f"Loaded hardening presets from {presets_file}")
        else:
            logger.warning(f"Hardening presets file not found: {presets_file}")

    def folder_rule(self, row: Mapping[str, str], folder_uri: str,
                    enabled: bool = True) -> Optional[AuthorizationRule]:
        """
        Build the rule for one joined pattern/folder row.

        Args:
            row: Joined row with Principal, GrantType and Permissions
            folder_uri: Resolved URI of the row's folder
            enabled: Whether the rule should exist afterwards

        Returns:
            AuthorizationRule, or None for grant types that do not apply to
            folders
        """
        grant_type = (row.get("GrantType") or "").strip()
        rule_args: Dict[str, Any] = {
            "principal": row["Principal"],
            "principal_type": "group",
            "permissions": split_permissions(row.get("Permissions", "")),
            "enabled": enabled,
            "description": ENABLED_DESCRIPTION if enabled else DISABLED_DESCRIPTION,
        }

        if grant_type == GrantType.OBJECT.value:
            rule_args["object_uri"] = f"{folder_uri}/**"
        elif grant_type == GrantType.CONVEYED.value:
            rule_args["container_uri"] = folder_uri
        else:
            logger.debug(f"Grant type {grant_type!r} does not apply to folders, skipping {row.get('Principal')}")
            return None

        return AuthorizationRule(**rule_args)

    def matrix_rule(self, row: Mapping[str, str], enabled: bool = True) -> AuthorizationRule:
        """Build the object rule for one capability matrix row."""
        return AuthorizationRule(
            principal=row["Principal"],
            principal_type="group",
            permissions=split_permissions(row.get("Permissions", "")),
            enabled=enabled,
            description=ENABLED_DESCRIPTION if enabled else DISABLED_DESCRIPTION,
            object_uri=row["URI"],
        )

    def caslib_backlog(self, rows: Sequence[Mapping[str, str]]) -> Dict[str, List[AccessControl]]:
        """
        Group joined pattern/CAS library rows by library.

        Only rows with the caslib grant type contribute.

        Args:
            rows: Joined rows with CASLIB, Principal, GrantType and Permissions

        Returns:
            Library name -> access control declarations, in row order
        """
        backlog: Dict[str, List[AccessControl]] = {}
        for row in rows:
            if (row.get("GrantType") or "").strip() != GrantType.CASLIB.value:
                continue
            backlog.setdefault(row["CASLIB"], []).append(
                AccessControl(
                    identity=row["Principal"],
                    identity_type="group",
                    permissions=split_permissions(row.get("Permissions", "")),
                )
            )
        logger.debug(f"Built CAS access control backlog for {len(backlog)} libraries")
        return backlog

    # Hardening presets

    @property
    def standard_caslibs(self) -> List[str]:
        return list(self.hardening.get("caslibs", []))

    @property
    def capabilities(self) -> List[str]:
        return list(self.hardening.get("authenticated_users", {}).get("capabilities", []))

    @property
    def default_folders(self) -> List[str]:
        return list(self.hardening.get("authenticated_users", {}).get("folders", []))

    def guest_rule(self) -> AuthorizationRule:
        """Disabled every-URI rule that clears all rules of the guest principal type."""
        return AuthorizationRule(
            principal=GUEST,
            principal_type=GUEST,
            enabled=False,
            description=REMOVED_DESCRIPTION,
            every_uri=True,
        )

    def guest_controls(self) -> List[AccessControl]:
        permissions = self.hardening.get("guest", {}).get("cas_permissions", [])
        return [AccessControl(identity=GUEST, identity_type=GUEST, permissions=permissions)]

    def authenticated_users_controls(self) -> List[AccessControl]:
        """Wildcard CAS permissions above read-only."""
        permissions = self.hardening.get("authenticated_users", {}).get("cas_permissions", [])
        return [AccessControl(identity=WILDCARD_PRINCIPAL, identity_type="group", permissions=permissions)]

    def authenticated_users_rule(self, container_uri: Optional[str] = None,
                                 object_uri: Optional[str] = None) -> AuthorizationRule:
        """Disabled rule for the authenticated users principal type on one URI."""
        return AuthorizationRule(
            principal=AUTHENTICATED_USERS,
            principal_type=AUTHENTICATED_USERS,
            enabled=False,
            description=REMOVED_DESCRIPTION,
            container_uri=container_uri,
            object_uri=object_uri,
        )
