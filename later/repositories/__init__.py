from .base import ReminderStore
from .memory import MemoryReminderStore
from .reminders import ReminderRepository, build_repository, looks_like_account_id
from .sql import SqlReminderStore

__all__ = [
    "MemoryReminderStore",
    "ReminderRepository",
    "ReminderStore",
    "SqlReminderStore",
    "build_repository",
    "looks_like_account_id",
]
