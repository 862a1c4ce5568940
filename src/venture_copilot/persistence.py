"""Venture persistence — one directory per venture in the local workspace."""

import json
import logging
import re
from datetime import datetime
from pathlib import Path

from . import config
from .state import create_venture, normalize_venture

logger = logging.getLogger("copilot.persistence")

CURRENT_SCHEMA_VERSION = "1.0"

_VENTURE_ID_RE = re.compile(r"[A-Za-z0-9_-]+")


class VentureNotFoundError(KeyError):
    pass


class VentureStore:
    """Stores each venture's graph, stage and messages in <workspace>/<id>/state.json."""

    def __init__(self, workspace_dir: Path | None = None):
        self.workspace_dir = Path(workspace_dir or config.WORKSPACE_DIR)

    def ensure_workspace_exists(self) -> Path:
        self.workspace_dir.mkdir(parents=True, exist_ok=True)
        return self.workspace_dir

    def venture_dir(self, venture_id: str) -> Path:
        if not _VENTURE_ID_RE.fullmatch(venture_id or ""):
            raise ValueError(f"Invalid venture id: {venture_id!r}")
        return self.workspace_dir / venture_id

    def exists(self, venture_id: str) -> bool:
        return (self.venture_dir(venture_id) / "state.json").exists()

    def create_venture(self) -> dict:
        venture = create_venture()
        (self.venture_dir(venture["id"]) / "artifacts").mkdir(parents=True)
        self.save(venture, [])
        logger.info("Created venture %s", venture["id"])
        return venture

    def save(self, venture: dict, messages: list) -> None:
        """Write venture + messages atomically (temp file, then rename)."""
        project_dir = self.venture_dir(venture["id"])
        project_dir.mkdir(parents=True, exist_ok=True)
        state_data = {
            "schema_version": CURRENT_SCHEMA_VERSION,
            "last_saved": datetime.now().isoformat(),
            "venture": venture,
            "messages": messages,
        }
        state_file = project_dir / "state.json"
        temp_file = project_dir / "state.json.tmp"
        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump(state_data, f, indent=2, default=str)
        temp_file.replace(state_file)
        logger.info("Venture saved to %s", state_file)

    def load(self, venture_id: str) -> tuple[dict, list]:
        """Load a venture, overlaying saved data on current defaults."""
        state_file = self.venture_dir(venture_id) / "state.json"
        if not state_file.exists():
            raise VentureNotFoundError(venture_id)

        with open(state_file, "r", encoding="utf-8") as f:
            saved_data = json.load(f)

        saved_version = saved_data.get("schema_version", "unknown")
        if saved_version != CURRENT_SCHEMA_VERSION:
            logger.warning(
                "Venture %s was saved with schema version %s (current: %s)",
                venture_id, saved_version, CURRENT_SCHEMA_VERSION,
            )

        venture = normalize_venture({**saved_data.get("venture", {}), "id": venture_id})
        messages = list(saved_data.get("messages") or [])
        logger.info("Venture loaded from %s", state_file)
        return venture, messages

    def list_ventures(self) -> list[str]:
        """Venture ids, most recently saved first."""
        if not self.workspace_dir.exists():
            return []
        return sorted(
            [d.name for d in self.workspace_dir.iterdir() if d.is_dir() and (d / "state.json").exists()],
            key=lambda x: (self.workspace_dir / x / "state.json").stat().st_mtime,
            reverse=True,
        )

    def append_message(self, venture_id: str, message: dict) -> None:
        venture, messages = self.load(venture_id)
        messages.append(message)
        self.save(venture, messages)

    def save_artifact(self, venture_id: str, filename: str, content: str) -> Path:
        artifacts_dir = self.venture_dir(venture_id) / "artifacts"
        artifacts_dir.mkdir(parents=True, exist_ok=True)
        path = artifacts_dir / filename
        path.write_text(content, encoding="utf-8")
        logger.info("Artifact written to %s", path)
        return path
