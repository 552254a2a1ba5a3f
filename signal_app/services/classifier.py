"""
Content classifier: free text -> entry type + optional duration.

Supported tags (case-insensitive, first match wins in this order):
  [wake]          marks the wake-up boundary
  [sleep]         marks the sleep boundary
  [signal: N]     N minutes of high-value work
  [wasted: N]     N minutes of wasted time

Examples
--------
  "9:30am woke up [wake]"                   -> wake
  "10-12 worked on research [signal: 120]"  -> signal, 120
  "wasted 45min on twitter [wasted: 45]"    -> wasted, 45
  "lunch"                                   -> neutral

Boundary intent (wake/sleep keywords) is reported separately and never
changes the classification.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from signal_app.core.errors import InvalidDurationError
from signal_app.models.log_entry import EntryType, QualityLevel


@dataclass
class ParsedEntry:
    entry_type: EntryType
    duration: Optional[int]
    content: str


@dataclass
class BoundaryIntent:
    """Whether the caller should offer to open (wake) or close (sleep) a Day."""
    wake: bool
    sleep: bool


_WAKE_TAG = re.compile(r"\[wake\]", re.IGNORECASE)
_SLEEP_TAG = re.compile(r"\[sleep\]", re.IGNORECASE)
_SIGNAL_TAG = re.compile(r"\[signal:\s*(\d+)\]", re.IGNORECASE)
_WASTED_TAG = re.compile(r"\[wasted:\s*(\d+)\]", re.IGNORECASE)

_WAKE_KEYWORDS = re.compile(r"\b(woke|wake|waking|got up|morning)\b", re.IGNORECASE)
_SLEEP_KEYWORDS = re.compile(r"\b(sleep|sleeping|slept|bed|goodnight|gn)\b", re.IGNORECASE)

_QUALITY_TO_TYPE = {
    QualityLevel.deep: EntryType.signal,
    QualityLevel.focused: EntryType.signal,
    QualityLevel.wasted: EntryType.wasted,
    QualityLevel.distracted: EntryType.wasted,
}


def parse_log_entry(content: str) -> ParsedEntry:
    """Extract type and duration from the bracketed tags in `content`."""
    text = content.strip()

    if _WAKE_TAG.search(text):
        return ParsedEntry(entry_type=EntryType.wake, duration=None, content=text)
    if _SLEEP_TAG.search(text):
        return ParsedEntry(entry_type=EntryType.sleep, duration=None, content=text)

    m = _SIGNAL_TAG.search(text)
    if m:
        return ParsedEntry(entry_type=EntryType.signal, duration=int(m.group(1)), content=text)

    m = _WASTED_TAG.search(text)
    if m:
        return ParsedEntry(entry_type=EntryType.wasted, duration=int(m.group(1)), content=text)

    return ParsedEntry(entry_type=EntryType.neutral, duration=None, content=text)


def contains_wake_keywords(content: str) -> bool:
    return bool(_WAKE_KEYWORDS.search(content) or _WAKE_TAG.search(content))


def contains_sleep_keywords(content: str) -> bool:
    return bool(_SLEEP_KEYWORDS.search(content) or _SLEEP_TAG.search(content))


def detect_boundary_intent(content: str) -> BoundaryIntent:
    return BoundaryIntent(
        wake=contains_wake_keywords(content),
        sleep=contains_sleep_keywords(content),
    )


def type_for_quality(quality: Optional[QualityLevel | str]) -> EntryType:
    """deep/focused -> signal, wasted/distracted -> wasted, anything else -> neutral."""
    try:
        level = QualityLevel(quality)
    except ValueError:
        return EntryType.neutral
    return _QUALITY_TO_TYPE.get(level, EntryType.neutral)


def validate_duration(duration: object) -> Optional[int]:
    if duration is None:
        return None
    if isinstance(duration, bool) or not isinstance(duration, int) or duration < 0:
        raise InvalidDurationError(duration)
    return duration


def classify(
    content: str,
    quality: Optional[QualityLevel | str] = None,
    duration: Optional[int] = None,
) -> ParsedEntry:
    """
    Resolve the stored type/duration for an entry.

    An explicit `quality` bypasses tag parsing; an explicit `duration`
    always wins over a parsed one.
    """
    duration = validate_duration(duration)

    if quality is not None:
        return ParsedEntry(
            entry_type=type_for_quality(quality),
            duration=duration,
            content=content.strip(),
        )

    parsed = parse_log_entry(content)
    if duration is not None:
        parsed.duration = duration
    return parsed


def format_duration(minutes: int) -> str:
    """Minutes -> "H:MM"."""
    hours, mins = divmod(minutes, 60)
    return f"{hours}:{mins:02d}"
