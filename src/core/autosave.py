"""
Autosave Store - JSON files holding the latest snapshot of each project
"""
import json
import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from config import AUTOSAVE_DIR

logger = logging.getLogger(__name__)


class AutosaveStore:
    """One ``<project_id>.json`` file per project under *directory*.

    Each file stores ``{"projectId", "name", "savedAt", "data"}`` where
    ``data`` is the full project snapshot.
    """

    SUFFIX = ".json"

    def __init__(self, directory: Union[str, Path] = AUTOSAVE_DIR):
        self.directory = Path(directory)

    def _path_for(self, project_id: str) -> Path:
        # Project ids come from snapshots, keep them inside the directory
        safe_id = "".join(c if c.isalnum() or c in "-_" else "_" for c in project_id)
        return self.directory / f"{safe_id}{self.SUFFIX}"

    def write(self, project_id: str, name: str, saved_at: str, data: dict) -> Path:
        """Write an autosave entry, replacing any previous one for the project."""
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path_for(project_id)
        entry = {
            "projectId": project_id,
            "name": name,
            "savedAt": saved_at,
            "data": data,
        }
        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(entry, f, ensure_ascii=False, indent=2)
        # Readers never see a half-written file
        os.replace(tmp_path, path)
        return path

    def read(self, project_id: str) -> Optional[dict]:
        path = self._path_for(project_id)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def list_entries(self) -> List[dict]:
        """
        Get autosave metadata, newest first.
        Returns list of dicts with keys: projectId, name, savedAt
        """
        if not self.directory.exists():
            return []

        entries = []
        for path in self.directory.glob(f"*{self.SUFFIX}"):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    entry = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Skipping unreadable autosave %s: %s", path.name, e)
                continue
            if not isinstance(entry, dict) or "projectId" not in entry:
                continue
            entries.append({
                "projectId": entry["projectId"],
                "name": entry.get("name", ""),
                "savedAt": entry.get("savedAt", ""),
            })

        entries.sort(key=lambda e: e["savedAt"], reverse=True)
        return entries

    def delete(self, project_id: str) -> bool:
        path = self._path_for(project_id)
        if not path.exists():
            return False
        path.unlink()
        return True
