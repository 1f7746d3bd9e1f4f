"""
Read-only access to Cursor's per-workspace chat history.

Each workspace lives in <workspaceStorage>/<workspace id>/ with a
state.vscdb SQLite database (an ItemTable of key -> JSON value) and a
workspace.json naming the opened folder. Databases are always opened
read-only; the editor may be running.
"""

import json
import logging
import os
import sqlite3
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, List, Optional
from urllib.parse import unquote, urlparse

from constants import (
    EDITOR_APP_DIRS,
    ITEM_COMPOSER_KEY,
    ITEM_GENERATIONS_KEY,
    ITEM_PROMPTS_KEY,
    STATE_DB_NAME,
    STORAGE_ENV_VAR,
    WORKSPACE_JSON_NAME,
)
from conversation import (
    ConversationData,
    SessionConversation,
    SessionRecord,
    link_session,
    normalize_conversation,
    normalize_sessions,
)

logger = logging.getLogger(__name__)


class WorkspaceNotFoundError(LookupError):
    """No workspace storage directory holds the requested id"""

    def __init__(self, workspace_id: str):
        super().__init__(f"Workspace {workspace_id} not found")
        self.workspace_id = workspace_id


class SessionNotFoundError(LookupError):
    """The workspace has no composer session with the requested id"""

    def __init__(self, workspace_id: str, composer_id: str):
        super().__init__(f"Composer session {composer_id} not found in workspace {workspace_id}")
        self.workspace_id = workspace_id
        self.composer_id = composer_id


@dataclass
class WorkspaceInfo:
    workspace_id: str
    db_path: str
    folder: Optional[str] = None
    last_modified: Optional[str] = None

    @property
    def name(self) -> str:
        """Opened folder's basename, or the workspace id"""
        if self.folder:
            return Path(self.folder).name or self.workspace_id
        return self.workspace_id


def default_workspace_dirs() -> List[Path]:
    """workspaceStorage directories of Cursor and VS Code for this platform"""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))

    return [base / app / "User" / "workspaceStorage" for app in EDITOR_APP_DIRS]


def storage_dirs_from_env() -> List[Path]:
    value = os.environ.get(STORAGE_ENV_VAR, "")
    return [Path(p).expanduser() for p in value.split(os.pathsep) if p]


def read_folder(workspace_dir: Path) -> Optional[str]:
    """Folder path from workspace.json, decoded from its file:// URI"""
    workspace_json = workspace_dir / WORKSPACE_JSON_NAME
    if not workspace_json.exists():
        return None

    try:
        with open(workspace_json, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (ValueError, IOError) as e:
        logger.warning("Could not read %s: %s", workspace_json, e)
        return None

    folder_uri = data.get("folder") if isinstance(data, dict) else None
    if not isinstance(folder_uri, str):
        return None
    if folder_uri.startswith("file://"):
        return unquote(urlparse(folder_uri).path)
    return folder_uri or None


def read_item(db_path: Path, key: str) -> Any:
    """
    JSON-decoded ItemTable value for key.

    Returns None when the key is absent, the database cannot be read or
    the stored value is not valid JSON.
    """
    try:
        conn = sqlite3.connect(f"file:{db_path}?mode=ro", uri=True)
    except sqlite3.Error as e:
        logger.warning("Could not open %s: %s", db_path, e)
        return None

    try:
        row = conn.execute("SELECT value FROM ItemTable WHERE key = ?", (key,)).fetchone()
    except sqlite3.Error as e:
        logger.warning("Could not read %s from %s: %s", key, db_path, e)
        return None
    finally:
        conn.close()

    if not row or row[0] is None:
        return None

    value = row[0]
    if isinstance(value, bytes):
        value = value.decode('utf-8', errors='replace')

    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        logger.warning("Invalid JSON under %s in %s: %s", key, db_path, e)
        return None


class HistoryStore:
    """
    Locates workspaces and loads their conversation records.

    Storage directories come from the CHATTRAIL_WORKSPACE_STORAGE
    environment variable when set, else from the caller, else the platform
    defaults.
    """

    def __init__(self, storage_dirs: Optional[Iterable] = None):
        env_dirs = storage_dirs_from_env()
        if env_dirs:
            self.storage_dirs = env_dirs
        elif storage_dirs:
            self.storage_dirs = [Path(d).expanduser() for d in storage_dirs]
        else:
            self.storage_dirs = default_workspace_dirs()

    def discover_workspaces(self) -> List[WorkspaceInfo]:
        """Every workspace with a state database, most recently modified first"""
        workspaces = []
        for storage_dir in self.storage_dirs:
            if not storage_dir.is_dir():
                logger.debug("Skipping missing storage dir %s", storage_dir)
                continue

            for entry in sorted(storage_dir.iterdir()):
                db_path = entry / STATE_DB_NAME
                if not entry.is_dir() or not db_path.exists():
                    continue
                workspaces.append(self._workspace_info(entry, db_path))

        workspaces.sort(key=lambda w: w.last_modified or "", reverse=True)
        return workspaces

    def _workspace_info(self, workspace_dir: Path, db_path: Path) -> WorkspaceInfo:
        mtime = datetime.fromtimestamp(db_path.stat().st_mtime).isoformat()
        return WorkspaceInfo(
            workspace_id=workspace_dir.name,
            db_path=str(db_path),
            folder=read_folder(workspace_dir),
            last_modified=mtime,
        )

    def find_workspace(self, workspace_id: str) -> WorkspaceInfo:
        """
        Locate one workspace by id.

        Raises:
            WorkspaceNotFoundError: If no storage directory holds it
        """
        # Ids are directory names; refuse anything that could escape the storage dir
        if workspace_id and Path(workspace_id).name == workspace_id and workspace_id not in ('.', '..'):
            for storage_dir in self.storage_dirs:
                db_path = storage_dir / workspace_id / STATE_DB_NAME
                if db_path.exists():
                    return self._workspace_info(db_path.parent, db_path)

        raise WorkspaceNotFoundError(workspace_id)

    def fetch_conversation_data(self, workspace_id: str) -> ConversationData:
        """Normalized prompts and generations of a workspace"""
        db_path = Path(self.find_workspace(workspace_id).db_path)
        return normalize_conversation(
            prompts=read_item(db_path, ITEM_PROMPTS_KEY),
            generations=read_item(db_path, ITEM_GENERATIONS_KEY),
        )

    def fetch_session_metadata(self, workspace_id: str) -> List[SessionRecord]:
        """Composer sessions of a workspace"""
        db_path = Path(self.find_workspace(workspace_id).db_path)
        return normalize_sessions(read_item(db_path, ITEM_COMPOSER_KEY))

    def fetch_session_conversations(self, workspace_id: str) -> List[SessionConversation]:
        """Every composer session with its linked prompts and generations"""
        data = self.fetch_conversation_data(workspace_id)
        sessions = self.fetch_session_metadata(workspace_id)
        return [link_session(session, data) for session in sessions]

    def fetch_session(self, workspace_id: str, composer_id: str) -> SessionConversation:
        """
        One composer session with its linked prompts and generations.

        Raises:
            WorkspaceNotFoundError: If the workspace does not exist
            SessionNotFoundError: If the workspace has no such session
        """
        sessions = self.fetch_session_metadata(workspace_id)
        for session in sessions:
            if session.composer_id == composer_id:
                return link_session(session, self.fetch_conversation_data(workspace_id))
        raise SessionNotFoundError(workspace_id, composer_id)
