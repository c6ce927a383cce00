"""
JSON file store.

Keeps the whole gate state in one JSON file so the CLI can be used without
a backend. Every mutation rewrites the file atomically; if the write fails
the in-memory change is rolled back, so memory and disk never diverge.

File format:
    {
        "users": [{"id": "u-1", "name": "Ploy", "role": "ADMIN", ...}],
        "tasks": [{"id": "t-1", "title": "...", "difficulty": "HARD", ...}],
        "reviews": [{"id": "rv-1", "task_id": "t-1", "round": 1, ...}],
        "task_logs": [...],
        "notifications": [...]
    }

Keys are written in snake_case; camelCase keys are accepted on read.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from qgate.core.config.models import PermissionConfig
from qgate.core.review.models import ReviewSession
from qgate.core.store.memory import InMemoryGateStore
from qgate.core.store.models import Notification, TaskLogEntry
from qgate.core.tasks.models import Task, User

logger = logging.getLogger(__name__)


class StoreFileNotFoundError(Exception):
    """Raised when the store file does not exist."""

    pass


class StoreFileCorruptedError(Exception):
    """Raised when the store file is malformed."""

    pass


class JsonGateStore(InMemoryGateStore):
    """
    InMemoryGateStore persisted to a JSON file.

    Example:
        >>> store = JsonGateStore.open(Path(".qgate/store.json"))
        >>> reviews = await store.list_reviews()
    """

    def __init__(self, path: Path, permissions: PermissionConfig | None = None) -> None:
        super().__init__(permissions=permissions)
        self.path = Path(path)

    @classmethod
    def open(
        cls, path: Path, permissions: PermissionConfig | None = None, *, create: bool = False
    ) -> JsonGateStore:
        """
        Load a store from ``path``.

        Args:
            path: Store file location
            permissions: Reviewer capability settings used to re-check writes
            create: Create an empty store file if it does not exist

        Raises:
            StoreFileNotFoundError: If the file is missing and create is False
            StoreFileCorruptedError: If the file is not a valid store
        """
        store = cls(path, permissions)
        if not store.path.exists():
            if not create:
                raise StoreFileNotFoundError(f"Store file not found: {store.path}")
            store.save()
            return store
        store.load()
        return store

    def load(self) -> None:
        """Replace in-memory state with the file's contents."""
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StoreFileCorruptedError(f"Failed to parse {self.path}: {e}") from e
        except OSError as e:
            raise StoreFileNotFoundError(f"Failed to read {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StoreFileCorruptedError(f"{self.path} must contain a JSON object")

        try:
            self.users = {u.id: u for u in (User(**raw) for raw in data.get("users", []))}
            self.tasks = {t.id: t for t in (Task(**raw) for raw in data.get("tasks", []))}
            self.reviews = {
                r.id: r for r in (ReviewSession(**raw) for raw in data.get("reviews", []))
            }
            self.task_logs = [TaskLogEntry(**raw) for raw in data.get("task_logs", [])]
            self.notifications = [Notification(**raw) for raw in data.get("notifications", [])]
        except (ValidationError, TypeError) as e:
            raise StoreFileCorruptedError(f"Invalid record in {self.path}: {e}") from e

        logger.debug(
            "Loaded %d reviews, %d tasks, %d users from %s",
            len(self.reviews),
            len(self.tasks),
            len(self.users),
            self.path,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "users": [u.model_dump(mode="json") for u in self.users.values()],
            "tasks": [t.model_dump(mode="json", exclude_none=True) for t in self.tasks.values()],
            "reviews": [
                r.model_dump(mode="json", exclude_none=True) for r in self.reviews.values()
            ],
            "task_logs": [e.model_dump(mode="json") for e in self.task_logs],
            "notifications": [n.model_dump(mode="json") for n in self.notifications],
        }

    def save(self) -> None:
        """
        Write the store atomically.

        Uses a temporary file and atomic rename to prevent corruption
        on write failures.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=".store_", suffix=".json.tmp"
        )

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.replace(temp_path, self.path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def _persist(self) -> None:
        self.save()
