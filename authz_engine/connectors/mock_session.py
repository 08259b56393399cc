"""
Mock Session for the Authorization Model Engine.

Provides an in-memory simulation of the REST endpoints the engine uses
(identities, folders, authorization rules, CAS access controls and
configuration) for testing and dry exploration without platform access.
"""

import copy
import logging
import re
import uuid
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from ..config import Settings
from .session import Session

logger = logging.getLogger(__name__)

STANDARD_CAS_LIBRARIES = [
    "AppData",
    "Formats",
    "ModelPerformanceData",
    "Models",
    "ModelStore",
    "ProductData",
    "Public",
    "ReferenceData",
    "SystemData",
    "VAModels",
]

_CONDITION = re.compile(r"""eq\(\s*["']?(\w+)["']?\s*,\s*["'](.*?)["']\s*\)""")


class MockCall(NamedTuple):
    method: str
    path: str
    params: Dict[str, str]
    body: Any


def parse_filter(expression: str) -> List[Tuple[str, str]]:
    """Parse eq()/and(eq(),...) filters into (field, value) conditions."""
    return _CONDITION.findall(expression or "")


def _collection(items: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"count": len(items), "items": items}


class MockSession(Session):
    """
    Session whose requests are answered from in-memory state.

    Every call is recorded in `calls`. Specific calls can be made to fail
    with `fail_on(method, path, status)`.
    """

    def __init__(self, settings: Optional[Settings] = None, seed_defaults: bool = True):
        super().__init__(settings or Settings(base_url="mock://viya"))
        self.calls: List[MockCall] = []
        self.failures: Dict[Tuple[str, str], int] = {}

        self.groups: Dict[str, Dict[str, Any]] = {}
        self.members: Dict[str, Dict[str, str]] = {}  # group_id -> {member_id: type}
        self.folders: Dict[str, Dict[str, Any]] = {}  # folder_id -> folder
        self.rules: Dict[str, Dict[str, Any]] = {}
        self.caslibs: Dict[str, List[Dict[str, Any]]] = {}
        self.configurations: Dict[str, Dict[str, Any]] = {}
        self.cas_sessions: Dict[str, Dict[str, Any]] = {}

        if seed_defaults:
            self.add_group("SASAdministrators", "SAS Administrators")
            for name in STANDARD_CAS_LIBRARIES:
                self.add_caslib(name)

    # Seeding helpers

    def add_group(self, group_id: str, name: str = "", members: Optional[Dict[str, str]] = None):
        self.groups[group_id] = {
            "id": group_id,
            "name": name or group_id,
            "description": name or group_id,
            "providerId": "local",
        }
        self.members.setdefault(group_id, {}).update(members or {})

    def add_caslib(self, name: str, entries: Optional[List[Dict[str, Any]]] = None):
        self.caslibs[name] = list(entries or [])

    def add_folder(self, path: str) -> str:
        """Create a folder path (and missing ancestors); returns its URI."""
        parent_uri = "none"
        current = ""
        for element in [e for e in path.split("/") if e]:
            current = f"{current}/{element}"
            existing = self._folder_by_path(current)
            if existing is None:
                existing = self._create_folder(element, current, parent_uri)
            parent_uri = f"/folders/folders/{existing['id']}"
        return parent_uri

    def add_rule(self, body: Dict[str, Any]) -> str:
        rule_id = str(uuid.uuid4())
        self.rules[rule_id] = dict(body, id=rule_id)
        return rule_id

    def add_configuration(self, config_id: str, values: Dict[str, Any]):
        self.configurations[config_id] = dict(values)

    def fail_on(self, method: str, path: str, status: int = 500):
        self.failures[(method.upper(), path)] = status

    # Inspection helpers

    def calls_to(self, method: str, path_prefix: str = "") -> List[MockCall]:
        return [c for c in self.calls if c.method == method and c.path.startswith(path_prefix)]

    def member_ids(self, group_id: str) -> List[str]:
        return list(self.members.get(group_id, {}))

    def rules_for(self, **conditions: str) -> List[Dict[str, Any]]:
        return [r for r in self.rules.values()
                if all(r.get(k) == v for k, v in conditions.items())]

    # Session overrides

    def _authenticate(self):
        self.base_url = self.settings.base_url or "mock://viya"
        self.access_token = "mock-token"

    def _dispatch(self, method, path, content_type, accept_type, params, body):
        query = dict(params)
        self.calls.append(MockCall(method, path, query, copy.deepcopy(body)))

        injected = self.failures.get((method, path))
        if injected:
            return {"httpStatusCode": injected, "message": "Injected failure"}, injected

        for pattern, handler in self._routes():
            match = re.fullmatch(pattern, path)
            if match and handler[0] == method:
                return handler[1](query, body, *match.groups())
        return {"httpStatusCode": 404, "message": f"No route for {method} {path}"}, 404

    def _routes(self):
        cas = r"/casManagement/servers/[^/]+"
        access = r"/casAccessManagement/servers/[^/]+"
        return [
            (r"/identities/groups/?", ("GET", self._list_groups)),
            (r"/identities/groups/?", ("POST", self._create_group)),
            (r"/identities/groups/([^/]+)", ("DELETE", self._delete_group)),
            (r"/identities/groups/([^/]+)/members", ("GET", self._list_members)),
            (r"/identities/groups/([^/]+)/(groupMembers|userMembers)/([^/]+)", ("PUT", self._add_member)),
            (r"/identities/groups/([^/]+)/(groupMembers|userMembers)/([^/]+)", ("DELETE", self._remove_member)),
            (r"/folders/folders/@item", ("GET", self._get_folder_by_path)),
            (r"/folders/folders/?", ("POST", self._post_folder)),
            (r"/folders/folders/([^/@]+)", ("DELETE", self._delete_folder)),
            (r"/authorization/rules/?", ("GET", self._list_rules)),
            (r"/authorization/rules/?", ("POST", self._post_rule)),
            (r"/authorization/rules/([^/]+)", ("DELETE", self._delete_rule)),
            (cas + r"/sessions", ("POST", self._open_session)),
            (cas + r"/sessions/([^/]+)", ("POST", self._session_action)),
            (cas + r"/sessions/([^/]+)", ("DELETE", self._close_session)),
            (cas + r"/caslibs", ("GET", self._list_caslibs)),
            (access + r"/admUser/assumeRole/superUser", ("PUT", self._assume_role)),
            (access + r"/caslibControls/([^/]+)/lock", ("POST", self._lock_caslib)),
            (access + r"/caslibControls/([^/]+)", ("GET", self._get_controls)),
            (access + r"/caslibControls/([^/]+)", ("PUT", self._replace_controls)),
            (access + r"/caslibControls/([^/]+)", ("DELETE", self._delete_controls)),
            (r"/configuration/configurations", ("GET", self._list_configurations)),
            (r"/configuration/configurations/([^/]+)", ("PUT", self._put_configuration)),
        ]

    # Identities

    def _list_groups(self, query, body):
        groups = list(self.groups.values())
        for field, value in parse_filter(query.get("filter", "")):
            groups = [g for g in groups if str(g.get(field)) == value]
        if "providerId" in query:
            groups = [g for g in groups if g.get("providerId") == query["providerId"]]
        return _collection(copy.deepcopy(groups)), 200

    def _create_group(self, query, body):
        group_id = (body or {}).get("id")
        if not group_id:
            return {"message": "id is required"}, 400
        if group_id in self.groups:
            return {"message": f"Group {group_id} already exists"}, 409
        self.add_group(group_id, body.get("name", ""))
        self.groups[group_id]["description"] = body.get("description", "")
        return copy.deepcopy(self.groups[group_id]), 201

    def _delete_group(self, query, body, group_id):
        if group_id not in self.groups:
            return {"message": "Not found"}, 404
        del self.groups[group_id]
        self.members.pop(group_id, None)
        for members in self.members.values():
            members.pop(group_id, None)
        return None, 204

    def _list_members(self, query, body, group_id):
        if group_id not in self.groups:
            return {"message": "Not found"}, 404
        items = [
            {"id": member_id, "name": self.groups.get(member_id, {}).get("name", member_id),
             "type": member_type}
            for member_id, member_type in self.members.get(group_id, {}).items()
        ]
        return _collection(items), 200

    def _add_member(self, query, body, group_id, segment, member_id):
        if group_id not in self.groups:
            return {"message": f"Group {group_id} not found"}, 404
        member_type = "group" if segment == "groupMembers" else "user"
        if member_type == "group" and member_id not in self.groups:
            return {"message": f"Group {member_id} not found"}, 404
        self.members[group_id][member_id] = member_type
        return None, 204

    def _remove_member(self, query, body, group_id, segment, member_id):
        if member_id not in self.members.get(group_id, {}):
            return {"message": "Not a member"}, 404
        del self.members[group_id][member_id]
        return None, 204

    # Folders

    def _folder_by_path(self, path: str) -> Optional[Dict[str, Any]]:
        for folder in self.folders.values():
            if folder["path"] == path:
                return folder
        return None

    def _create_folder(self, name: str, path: str, parent_uri: str) -> Dict[str, Any]:
        folder_id = str(uuid.uuid4())
        self.folders[folder_id] = {
            "id": folder_id,
            "name": name,
            "path": path,
            "parentFolderUri": None if parent_uri == "none" else parent_uri,
        }
        return self.folders[folder_id]

    def _get_folder_by_path(self, query, body):
        folder = self._folder_by_path(query.get("path", "").rstrip("/"))
        if folder is None:
            return {"message": "Not found"}, 404
        return copy.deepcopy(folder), 200

    def _post_folder(self, query, body):
        parent_uri = query.get("parentFolderUri", "none")
        name = (body or {}).get("name", "")
        if parent_uri == "none":
            parent_path = ""
        else:
            parent = self.folders.get(parent_uri.rsplit("/", 1)[-1])
            if parent is None:
                return {"message": "Parent folder not found"}, 404
            parent_path = parent["path"]
        path = f"{parent_path}/{name}"
        if self._folder_by_path(path):
            return {"message": "Folder already exists"}, 409
        return copy.deepcopy(self._create_folder(name, path, parent_uri)), 201

    def _delete_folder(self, query, body, folder_id):
        folder = self.folders.get(folder_id)
        if folder is None:
            return {"message": "Not found"}, 404
        children = [f for f in self.folders.values()
                    if f["path"].startswith(folder["path"] + "/")]
        if children and query.get("recursive") != "true":
            return {"message": "Folder is not empty"}, 409
        for child in children:
            del self.folders[child["id"]]
        del self.folders[folder_id]
        return None, 204

    # Authorization rules

    def _list_rules(self, query, body):
        rules = list(self.rules.values())
        for field, value in parse_filter(query.get("filter", "")):
            rules = [r for r in rules if r.get(field) == value]
        return _collection(copy.deepcopy(rules)), 200

    def _post_rule(self, query, body):
        if not isinstance(body, dict) or not body.get("principalType"):
            return {"message": "Invalid rule"}, 400
        rule_id = self.add_rule(body)
        return copy.deepcopy(self.rules[rule_id]), 201

    def _delete_rule(self, query, body, rule_id):
        if self.rules.pop(rule_id, None) is None:
            return {"message": "Not found"}, 404
        return None, 204

    # CAS

    def _open_session(self, query, body):
        session_id = str(uuid.uuid4())
        self.cas_sessions[session_id] = {"superUser": False, "snapshot": None}
        return {"id": session_id}, 201

    def _assume_role(self, query, body):
        cas_session = self.cas_sessions.get(query.get("sessionId", ""))
        if cas_session is None:
            return {"message": "Unknown session"}, 404
        cas_session["superUser"] = True
        return None, 204

    def _close_session(self, query, body, session_id):
        if self.cas_sessions.pop(session_id, None) is None:
            return {"message": "Unknown session"}, 404
        return None, 204

    def _session_action(self, query, body, session_id):
        cas_session = self.cas_sessions.get(session_id)
        if cas_session is None:
            return {"message": "Unknown session"}, 404
        action = query.get("action")
        if action == "start":
            cas_session["snapshot"] = copy.deepcopy(self.caslibs)
        elif action == "commit":
            cas_session["snapshot"] = None
        elif action == "cancel":
            if cas_session["snapshot"] is not None:
                self.caslibs = cas_session["snapshot"]
            cas_session["snapshot"] = None
        else:
            return {"message": f"Unknown action {action}"}, 400
        return None, 200

    def _list_caslibs(self, query, body):
        names = list(self.caslibs)
        for field, value in parse_filter(query.get("filter", "")):
            if field == "name":
                names = [n for n in names if n == value]
        return _collection([{"name": n} for n in names]), 200

    def _lock_caslib(self, query, body, library):
        if library not in self.caslibs:
            return {"message": "Not found"}, 404
        return None, 204

    def _get_controls(self, query, body, library):
        if library not in self.caslibs:
            return {"message": "Not found"}, 404
        return _collection(copy.deepcopy(self.caslibs[library])), 200

    def _replace_controls(self, query, body, library):
        if library not in self.caslibs:
            return {"message": "Not found"}, 404
        self.caslibs[library] = copy.deepcopy(body or [])
        return None, 204

    def _delete_controls(self, query, body, library):
        if library not in self.caslibs:
            return {"message": "Not found"}, 404
        if not body:
            self.caslibs[library] = []
        else:
            self.caslibs[library] = [e for e in self.caslibs[library] if e not in body]
        return None, 204

    # Configuration

    def _list_configurations(self, query, body):
        items = [{"id": config_id, **values} for config_id, values in self.configurations.items()]
        return _collection(items), 200

    def _put_configuration(self, query, body, config_id):
        if config_id not in self.configurations:
            return {"message": "Not found"}, 404
        self.configurations[config_id].update(body or {})
        return copy.deepcopy(self.configurations[config_id]), 200
