from .day import Day, DayStatus
from .log_entry import LogEntry, EntryType, EntryStatus, QualityLevel

__all__ = [
    "Day",
    "DayStatus",
    "LogEntry",
    "EntryType",
    "EntryStatus",
    "QualityLevel",
]
