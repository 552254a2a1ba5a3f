"""
Timer state machine for one in-progress work session.

States
------
  IDLE -> RUNNING -> (PAUSED <-> RUNNING) -> IDLE   (stop / reset)

Time accounting
---------------
accumulated_elapsed (ms) is the time banked before the current run segment.
While running-unpaused the live elapsed time is

    accumulated_elapsed + (now - start_time)

pause() folds the current segment into accumulated_elapsed; resume() starts a
new segment. The snapshot is written to disk on every state change, so a
process restart picks the session up again: a running snapshot has the
downtime folded in and start_time rebased to now, a paused one is restored as-is.

The timer never touches the ledger; TimerSessionService does that.
"""
from __future__ import annotations

import asyncio
import json
import os
import threading
import time
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import AsyncIterator, Callable, Optional

from signal_app.core.errors import TimerAlreadyRunningError, TimerNotRunningError
from signal_app.core.logging import get_logger

logger = get_logger(__name__)

MS_PER_MINUTE = 60_000


def _now_ms() -> int:
    return int(time.time() * 1000)


def format_elapsed(ms: int) -> str:
    """Milliseconds -> "HH:MM:SS"."""
    total_seconds = max(0, ms) // 1000
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


class TimerState(str, Enum):
    idle = "idle"
    running = "running"
    paused = "paused"


@dataclass
class TimerSnapshot:
    is_running: bool = False
    is_paused: bool = False
    start_time: Optional[int] = None        # epoch ms, current run segment
    accumulated_elapsed: int = 0            # ms banked before start_time
    current_entry_id: Optional[int] = None
    current_day_id: Optional[int] = None

    @property
    def state(self) -> TimerState:
        if not self.is_running:
            return TimerState.idle
        return TimerState.paused if self.is_paused else TimerState.running

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "TimerSnapshot":
        start = data.get("start_time")
        return cls(
            is_running=bool(data.get("is_running", False)),
            is_paused=bool(data.get("is_paused", False)),
            start_time=int(start) if start is not None else None,
            accumulated_elapsed=max(0, int(data.get("accumulated_elapsed") or 0)),
            current_entry_id=data.get("current_entry_id"),
            current_day_id=data.get("current_day_id"),
        )


@dataclass
class StopResult:
    duration: int                 # whole minutes, floored
    entry_id: Optional[int]
    day_id: Optional[int]
    elapsed_ms: int


# ---------------------------------------------------------------------------
# Snapshot persistence
# ---------------------------------------------------------------------------

class SnapshotStore:
    """Single-record JSON file holding the current TimerSnapshot."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> Optional[TimerSnapshot]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
            return TimerSnapshot.from_dict(data)
        except (OSError, ValueError, TypeError) as exc:
            logger.error("unreadable timer snapshot at %s, starting idle: %s", self.path, exc)
            return None

    def save(self, snapshot: TimerSnapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(snapshot.to_dict()), encoding="utf-8")
        os.replace(tmp, self.path)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

class TimerMachine:
    def __init__(self, store: SnapshotStore, clock: Callable[[], int] = _now_ms):
        self._store = store
        self._clock = clock
        self._lock = threading.RLock()
        self._snap = TimerSnapshot()
        self._recover()

    # --- recovery ---------------------------------------------------------

    def _recover(self) -> None:
        loaded = self._store.load()
        if loaded is None:
            return
        if loaded.is_running and not loaded.is_paused and loaded.start_time is not None:
            now = self._clock()
            downtime = max(0, now - loaded.start_time)
            loaded.accumulated_elapsed += downtime
            loaded.start_time = now
            logger.info(
                "resumed running timer for entry %s (+%d ms while offline)",
                loaded.current_entry_id, downtime,
            )
            self._snap = loaded
            self._persist()
            return
        if loaded.is_running:
            logger.info("restored paused timer for entry %s", loaded.current_entry_id)
        self._snap = loaded

    def _persist(self) -> None:
        self._store.save(self._snap)

    # --- projections ------------------------------------------------------

    @property
    def snapshot(self) -> TimerSnapshot:
        with self._lock:
            return TimerSnapshot(**self._snap.to_dict())

    @property
    def state(self) -> TimerState:
        with self._lock:
            return self._snap.state

    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._snap.is_running

    def elapsed_ms(self) -> int:
        """Live elapsed time. Reading it never changes state."""
        with self._lock:
            snap = self._snap
            if snap.is_running and not snap.is_paused and snap.start_time is not None:
                return snap.accumulated_elapsed + max(0, self._clock() - snap.start_time)
            return snap.accumulated_elapsed

    tick = elapsed_ms

    def formatted_elapsed(self) -> str:
        return format_elapsed(self.elapsed_ms())

    # --- transitions ------------------------------------------------------

    def start(self, day_id: int, entry_id: int) -> TimerSnapshot:
        with self._lock:
            if self._snap.is_running:
                raise TimerAlreadyRunningError(self._snap.current_entry_id)
            self._snap = TimerSnapshot(
                is_running=True,
                is_paused=False,
                start_time=self._clock(),
                accumulated_elapsed=0,
                current_entry_id=entry_id,
                current_day_id=day_id,
            )
            self._persist()
            logger.info("timer started for entry %s on day %s", entry_id, day_id)
            return self.snapshot

    def pause(self) -> TimerSnapshot:
        with self._lock:
            snap = self._snap
            if not snap.is_running or snap.is_paused:
                return self.snapshot
            now = self._clock()
            snap.accumulated_elapsed += max(0, now - (snap.start_time or now))
            snap.is_paused = True
            self._persist()
            return self.snapshot

    def resume(self) -> TimerSnapshot:
        with self._lock:
            snap = self._snap
            if not snap.is_paused:
                return self.snapshot
            snap.start_time = self._clock()
            snap.is_paused = False
            self._persist()
            return self.snapshot

    def pending_stop(self) -> StopResult:
        """What stop() would return right now, without changing state."""
        with self._lock:
            if not self._snap.is_running:
                raise TimerNotRunningError()
            elapsed = self.elapsed_ms()
            return StopResult(
                duration=elapsed // MS_PER_MINUTE,
                entry_id=self._snap.current_entry_id,
                day_id=self._snap.current_day_id,
                elapsed_ms=elapsed,
            )

    def stop(self) -> StopResult:
        with self._lock:
            result = self.pending_stop()
            self._snap = TimerSnapshot()
            self._persist()
            logger.info("timer stopped for entry %s after %d min", result.entry_id, result.duration)
            return result

    def reset(self) -> None:
        with self._lock:
            self._snap = TimerSnapshot()
            self._store.clear()

    # --- ticking ----------------------------------------------------------

    async def ticks(self, interval: float = 0.1) -> AsyncIterator[int]:
        """
        Yield the elapsed projection every `interval` seconds while the
        session is running and unpaused. Ends when it stops or pauses.
        """
        while self._snap.is_running and not self._snap.is_paused:
            yield self.elapsed_ms()
            await asyncio.sleep(interval)
