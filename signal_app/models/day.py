from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
import enum

from sqlalchemy import CheckConstraint, Index, Integer, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from signal_app.db.base import Base, UTCDateTime

if TYPE_CHECKING:
    from signal_app.models.log_entry import LogEntry


class DayStatus(str, enum.Enum):
    open = "open"
    closed = "closed"


class Day(Base):
    """One wake-to-sleep period; the unit of total aggregation.

    signal_total / wasted_total are maintained by the ledger on every entry
    mutation and are never written directly.
    """

    __tablename__ = "days"
    __table_args__ = (
        CheckConstraint("signal_total >= 0", name="ck_days_signal_total_non_negative"),
        CheckConstraint("wasted_total >= 0", name="ck_days_wasted_total_non_negative"),
        # At most one open day.
        Index(
            "uq_days_single_open",
            text("(sleep_time IS NULL)"),
            unique=True,
            postgresql_where=text("sleep_time IS NULL"),
            sqlite_where=text("sleep_time IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    wake_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)
    sleep_time: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True, index=True)
    signal_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    wasted_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    entries: Mapped[list["LogEntry"]] = relationship(
        back_populates="day",
        order_by="LogEntry.timestamp",
        cascade="all, delete-orphan",
    )

    @property
    def is_open(self) -> bool:
        return self.sleep_time is None

    @property
    def status(self) -> DayStatus:
        return DayStatus.open if self.is_open else DayStatus.closed
