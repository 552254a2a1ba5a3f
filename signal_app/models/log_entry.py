from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
import enum

from sqlalchemy import ForeignKey, Integer, Text, Enum, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from signal_app.db.base import Base, UTCDateTime

if TYPE_CHECKING:
    from signal_app.models.day import Day


class EntryType(str, enum.Enum):
    wake = "wake"
    sleep = "sleep"
    signal = "signal"
    wasted = "wasted"
    neutral = "neutral"


class QualityLevel(str, enum.Enum):
    deep = "deep"
    focused = "focused"
    neutral = "neutral"
    distracted = "distracted"
    wasted = "wasted"


class EntryStatus(str, enum.Enum):
    draft = "draft"
    final = "final"


class LogEntry(Base):
    __tablename__ = "log_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    day_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("days.id", ondelete="CASCADE"), nullable=False, index=True
    )
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    entry_type: Mapped[EntryType] = mapped_column(
        Enum(EntryType, name="entry_type_enum"), nullable=False, default=EntryType.neutral
    )
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    quality: Mapped[QualityLevel | None] = mapped_column(
        Enum(QualityLevel, name="quality_level_enum"), nullable=True
    )
    status: Mapped[EntryStatus] = mapped_column(
        Enum(EntryStatus, name="entry_status_enum"), nullable=False, default=EntryStatus.final
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    day: Mapped["Day"] = relationship(back_populates="entries")

    @property
    def is_draft(self) -> bool:
        return self.status == EntryStatus.draft

    def contribution(self) -> tuple[int, int]:
        """(signal, wasted) minutes this entry adds to its Day's totals."""
        if self.is_draft or not self.duration:
            return 0, 0
        if self.entry_type == EntryType.signal:
            return self.duration, 0
        if self.entry_type == EntryType.wasted:
            return 0, self.duration
        return 0, 0
