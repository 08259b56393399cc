"""
Principal graphs for the Authorization Model Engine.

A PrincipalGraph holds the groups and users of one view of the directory
(the desired target state read from a groups file, or the current state read
from the identities service) with parent -> member edges. Principals are
owned by the graph that created them; two graphs are compared by principal
ID only.
"""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from ..models import PrincipalKind

logger = logging.getLogger(__name__)


class Principal:
    """A user or group identity and its nesting relations."""

    def __init__(self, id: str, kind: PrincipalKind = PrincipalKind.GROUP, name: str = "",
                 description: str = "", exists: Optional[bool] = None):
        self.id = id
        self.kind = PrincipalKind(kind)
        self.name = name or id
        self.description = description
        self.exists = exists
        self.parents: List["Principal"] = []
        self.members: List["Principal"] = []

    @property
    def is_group(self) -> bool:
        return self.kind == PrincipalKind.GROUP

    def member_ids(self) -> List[str]:
        return [m.id for m in self.members]

    def add_member(self, member: "Principal"):
        """Record the parent -> member edge on both ends, once."""
        if member.id not in self.member_ids():
            self.members.append(member)
        if self.id not in [p.id for p in member.parents]:
            member.parents.append(self)

    def __repr__(self):
        return f"Principal({self.kind.value}:{self.id})"


class PrincipalGraph:
    """Groups and users keyed by ID, with membership edges."""

    def __init__(self):
        self.groups: Dict[str, Principal] = {}
        self.users: Dict[str, Principal] = {}

    def __contains__(self, group_id: str) -> bool:
        return group_id in self.groups

    def __len__(self) -> int:
        return len(self.groups)

    def group(self, group_id: str, name: str = "", description: str = "",
              exists: Optional[bool] = None) -> Principal:
        """Get or create the group node for an ID."""
        node = self.groups.get(group_id)
        if node is None:
            node = Principal(group_id, PrincipalKind.GROUP, name, description, exists)
            self.groups[group_id] = node
        elif name and node.name == node.id:
            node.name = name
            node.description = node.description or description
        return node

    def user(self, user_id: str, exists: Optional[bool] = None) -> Principal:
        """Get or create the user node for an ID."""
        node = self.users.get(user_id)
        if node is None:
            node = Principal(user_id, PrincipalKind.USER, exists=exists)
            self.users[user_id] = node
        return node

    def members_of(self, group_id: str) -> List[Principal]:
        node = self.groups.get(group_id)
        return list(node.members) if node else []

    def ordered_groups(self) -> Iterator[Principal]:
        """
        Yield groups so that every parent inside the graph precedes its members.

        Cycles are broken at the first revisit.
        """
        visited = set()

        def visit(node: Principal) -> Iterator[Principal]:
            if node.id in visited:
                return
            visited.add(node.id)
            for parent in node.parents:
                if parent.id in self.groups:
                    yield from visit(parent)
            yield node

        for node in list(self.groups.values()):
            yield from visit(node)

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, str]]) -> "PrincipalGraph":
        """
        Build the target graph from groups file rows.

        Args:
            rows: Dicts with ParentGroupID, GroupID, GroupName and UserID

        Returns:
            PrincipalGraph of the desired state
        """
        graph = cls()
        for row in rows:
            group_id = (row.get("GroupID") or "").strip()
            parent_id = (row.get("ParentGroupID") or "").strip()
            group_name = (row.get("GroupName") or "").strip()
            user_id = (row.get("UserID") or "").strip()

            if not group_id:
                logger.error(f"The GroupID always needs to be provided, skipping row: {dict(row)}")
                continue

            group = graph.group(group_id, group_name, group_name)
            if parent_id:
                graph.group(parent_id).add_member(group)
            if user_id:
                group.add_member(graph.user(user_id))

        logger.debug(f"Built target graph with {len(graph.groups)} groups and {len(graph.users)} users")
        return graph

    @classmethod
    def from_directory(cls, identities: Any) -> "PrincipalGraph":
        """
        Build the current graph from the identities service.

        Args:
            identities: IdentitiesConnector used to enumerate groups and members

        Returns:
            PrincipalGraph of the observed state
        """
        graph = cls()
        for listed in identities.list_groups():
            group = graph.group(listed.id, listed.name, listed.description, exists=True)
            for member in identities.list_members(listed.id):
                if member.is_group:
                    node = graph.group(member.id, member.name, member.description, exists=True)
                else:
                    node = graph.user(member.id, exists=True)
                group.add_member(node)

        logger.debug(f"Built current graph with {len(graph.groups)} groups and {len(graph.users)} users")
        return graph
