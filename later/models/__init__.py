from .base import Base
from .profile import Profile
from .reminder import Reminder, ReminderAttachment

__all__ = [
    "Base",
    "Profile",
    "Reminder",
    "ReminderAttachment",
]
