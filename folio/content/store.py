"""
Content document storage.

The whole portfolio lives in one JSON file. Reads are forgiving (missing or
corrupt file -> empty document) so the public endpoint keeps answering;
writes back up the previous file before replacing it.
"""

from __future__ import annotations

import json
import shutil
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from folio.observability.logging import get_logger

logger = get_logger(__name__)


class ContentStoreError(RuntimeError):
    """Raised when the content document cannot be saved."""


class ContentStore:
    """Load and replace the portfolio document on disk."""

    def __init__(self, content_path: Path, backup_dir: Path) -> None:
        self.content_path = Path(content_path)
        self.backup_dir = Path(backup_dir)

    def load(self) -> Any:
        """
        Read the document.

        Returns:
            Parsed JSON, or ``{}`` if the file is missing or unreadable.
        """
        if not self.content_path.exists():
            return {}

        try:
            raw = self.content_path.read_text(encoding="utf-8")
            # Editors on Windows like to prepend a BOM
            return json.loads(raw.lstrip("\ufeff"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load content document %s: %s", self.content_path, e)
            return {}

    def save(self, document: Any) -> Path | None:
        """
        Replace the document, backing up the current file first.

        Returns:
            Path of the backup written, or None if there was nothing to back up.

        Raises:
            ContentStoreError: If the backup or the write fails.
        """
        backup_path = None
        try:
            self.content_path.parent.mkdir(parents=True, exist_ok=True)
            if self.content_path.exists():
                self.backup_dir.mkdir(parents=True, exist_ok=True)
                stamp = datetime.now(UTC).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
                backup_path = self.backup_dir / f"content.backup.{stamp}.json"
                shutil.copyfile(self.content_path, backup_path)

            self.content_path.write_text(
                json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8"
            )
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to save content document: %s", e)
            raise ContentStoreError("Failed to save content document") from e

        logger.info("Content document replaced (backup: %s)", backup_path)
        return backup_path


def extract_projects(document: Any) -> list[dict[str, str]]:
    """
    Pull blog/project entries out of a (filtered) document for the AI prompt.

    Looks for a section tagged ``type: "blogs"`` either at the top level of a
    list document or as a ``blogs`` key of a mapping document.
    """
    section: Any = None
    if isinstance(document, list):
        section = next(
            (d for d in document if isinstance(d, dict) and d.get("type") == "blogs"), None
        )
    elif isinstance(document, dict):
        section = document

    blogs = section.get("blogs") if isinstance(section, dict) else None
    if not isinstance(blogs, list):
        return []

    projects = []
    for blog in blogs:
        if not isinstance(blog, dict):
            continue
        projects.append(
            {
                "title": _text(blog.get("title")),
                "description": _text(blog.get("content")),
                "link": _text(blog.get("blog")),
            }
        )
    return projects


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)
