"""
Store ports and the bundled in-memory and JSON file stores.
"""

from qgate.core.store.backend import (
    Notifier,
    ReviewStore,
    TaskLog,
    TaskStore,
    XPAwarder,
)
from qgate.core.store.json import (
    JsonGateStore,
    StoreFileCorruptedError,
    StoreFileNotFoundError,
)
from qgate.core.store.memory import InMemoryGateStore
from qgate.core.store.models import Notification, TaskLogEntry

__all__ = [
    "InMemoryGateStore",
    "JsonGateStore",
    "Notification",
    "Notifier",
    "ReviewStore",
    "StoreFileCorruptedError",
    "StoreFileNotFoundError",
    "TaskLog",
    "TaskLogEntry",
    "TaskStore",
    "XPAwarder",
]
