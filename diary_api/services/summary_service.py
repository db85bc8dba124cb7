"""
Diary Backend — Summary Service (Window Aggregation)
=====================================================

What:  Scans every diary record whose key date falls inside a trailing window
       of UTC calendar days and folds them into histogram counters.
How:   Sequential pagination over the "diary:" key space; per page, keys are
       filtered by their embedded date, surviving bodies are read with a
       bounded concurrent fan-out, then folded one by one into a summary
       value owned by this request.
Who:   Called by GET /summary-data.

Scan Flow (one request):
    ┌──────────┐   ┌───────────────┐   ┌────────────────┐   ┌──────────┐
    │ list()   │──▶│ key date ≥    │──▶│ get() × N      │──▶│ fold     │
    │ one page │   │ cutoff?       │   │ (≤ concurrency)│   │ in order │
    └──────────┘   └───────────────┘   └────────────────┘   └──────────┘
          ▲                                                       │
          └──────────────── next cursor (until None) ─────────────┘

The store only offers prefix/cursor scans, so the whole key space is read
on every request. That is fine at diary scale; a date-ordered secondary
index would be the next step if it stops being fine.

Fold Rules:
    Scalar histograms   value (first element of a list) must be one of the
                        buckets, otherwise counts as "unknown"
    Multi-label         each listed value matching a bucket increments it;
                        other values are dropped, no "unknown" bucket
    Duration            leading number of data.duration if finite, else skipped
    Severity max        mild=1, moderate=2, severe=3; 0 never recorded
"""

import logging
import math
import re
from datetime import timezone
from typing import Any, Dict, List, Optional, Tuple

from diary_api.config import settings
from diary_api.schemas.diary import DiarySummary, FieldValue, SummaryResponse
from diary_api.services.kv_base import KVStore, require_store
from diary_api.services.record_keys import (
    RECORD_PREFIX,
    Clock,
    cutoff_date,
    extract_date_from_key,
    is_within_window,
    utc_now,
)

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

CONDITION_LABELS = ("menstruation", "stress", "anxiety", "sleep", "no_meal", "other_disease")

# (summary attribute, data field, buckets)
SCALAR_HISTOGRAMS: Tuple[Tuple[str, str, Tuple[str, ...]], ...] = (
    ("by_headache", "headache", ("yes", "no")),
    ("by_severity", "severity", ("mild", "moderate", "severe")),
    ("by_medication", "medication", ("yes", "no")),
    ("by_overall", "overall", ("very_bad", "normal", "very_good")),
    ("by_med_effect", "med_effect", ("none", "partial", "good")),
)

MULTI_LABEL_HISTOGRAMS: Tuple[Tuple[str, str, Tuple[str, ...]], ...] = (
    ("by_sensitivity", "sensitivity", ("light", "sound")),
    ("by_symptoms", "symptoms", ("nausea", "stomach")),
    ("by_condition", "condition", CONDITION_LABELS),
    ("by_activity", "activity", ("walk", "exercise", "meditation", "work")),
)

SEVERITY_SCORES = {"mild": 1, "moderate": 2, "severe": 3}

# Optional sign, digits with an optional fraction, optional exponent
LEADING_FLOAT = re.compile(r"\s*[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


# ══════════════════════════════════════════════════════════════════════════
# Value Resolution
# ══════════════════════════════════════════════════════════════════════════


def scalar_of(value: Optional[FieldValue]) -> Any:
    """A single answer: the value itself, or the first element of a list."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


def labels_of(value: Optional[FieldValue]) -> List[Any]:
    """All answers of a multi-choice field; a single value counts as one answer."""
    if not value:
        return []
    if isinstance(value, list):
        return value
    return [value]


def parse_duration(value: Optional[FieldValue]) -> Optional[float]:
    """
    data.duration as a finite float, or None when it does not parse.

    Strings are read up to the end of their leading number, so free-form
    answers like "2.5h" or "90分钟" count as 2.5 and 90.
    """
    raw = scalar_of(value)
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        number = float(raw)
    elif isinstance(raw, str):
        match = LEADING_FLOAT.match(raw)
        if match is None:
            return None
        number = float(match.group(0))
    else:
        return None
    return number if math.isfinite(number) else None


def severity_score(severity: Any) -> int:
    return SEVERITY_SCORES.get(severity, 0) if isinstance(severity, str) else 0


# ══════════════════════════════════════════════════════════════════════════
# Folding
# ══════════════════════════════════════════════════════════════════════════


def new_summary() -> DiarySummary:
    """Empty summary with every histogram bucket present at zero."""
    summary = DiarySummary()
    for attr, _, buckets in SCALAR_HISTOGRAMS:
        setattr(summary, attr, {**dict.fromkeys(buckets, 0), UNKNOWN: 0})
    for attr, _, buckets in MULTI_LABEL_HISTOGRAMS:
        setattr(summary, attr, dict.fromkeys(buckets, 0))
    summary.by_condition_headache = dict.fromkeys(CONDITION_LABELS, 0)
    return summary


def _bump(counter: Dict[str, Any], key: str, amount: float = 1) -> None:
    counter[key] = counter.get(key, 0) + amount


def _count_scalar(counter: Dict[str, int], value: Any) -> None:
    bucket = value if isinstance(value, str) and value in counter else UNKNOWN
    counter[bucket] += 1


def _count_labels(counter: Dict[str, int], value: Optional[FieldValue]) -> None:
    for label in labels_of(value):
        if isinstance(label, str) and label in counter:
            counter[label] += 1


def fold_record(summary: DiarySummary, record_date: str, data: Dict[str, Any]) -> DiarySummary:
    """
    Fold one record's answers into the summary and return it.

    Args:
        summary:     Accumulator owned by the current aggregation pass
        record_date: ISO date taken from the record key
        data:        The record's questionnaire answers
    """
    summary.total += 1
    _bump(summary.by_date, record_date)

    for attr, field_name, _ in SCALAR_HISTOGRAMS:
        _count_scalar(getattr(summary, attr), scalar_of(data.get(field_name)))

    headache = scalar_of(data.get("headache"))
    if headache == "yes":
        _bump(summary.by_date_headache, record_date)
    if scalar_of(data.get("medication")) == "yes":
        _bump(summary.by_date_med_yes, record_date)

    for attr, field_name, _ in MULTI_LABEL_HISTOGRAMS:
        _count_labels(getattr(summary, attr), data.get(field_name))
    if headache == "yes":
        _count_labels(summary.by_condition_headache, data.get("condition"))

    duration = parse_duration(data.get("duration"))
    if duration is not None:
        summary.duration.count += 1
        summary.duration.sum += duration
        _bump(summary.by_date_duration_sum, record_date, duration)
        _bump(summary.by_date_duration_count, record_date)

    score = severity_score(scalar_of(data.get("severity")))
    if score > 0:
        current = summary.by_date_severity_max.get(record_date, 0)
        summary.by_date_severity_max[record_date] = max(current, score)

    return summary


def fold_entry(summary: DiarySummary, key: str, entry: Any, cutoff: str) -> DiarySummary:
    """
    Fold a stored value read for `key`, skipping anything that is not a record
    or whose key date falls before the cutoff.
    """
    if not isinstance(entry, dict):
        return summary
    record_date = extract_date_from_key(key)
    if not record_date or record_date < cutoff:
        return summary
    data = entry.get("data")
    return fold_record(summary, record_date, data if isinstance(data, dict) else {})


# ══════════════════════════════════════════════════════════════════════════
# Service
# ══════════════════════════════════════════════════════════════════════════


class SummaryService:
    """
    Read-only aggregation over the diary key space.

    Args:
        clock: Source of "now" (UTC); tests replace it to pin "today".
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or utc_now

    async def build_summary(self, store: Optional[KVStore], days: Optional[int] = None) -> SummaryResponse:
        """
        Aggregate every record dated within the last `days` UTC calendar days.

        Args:
            store: Store binding (None when unconfigured)
            days:  Window length including today (default settings.summary_default_days)

        Returns:
            SummaryResponse with the folded summary and the window length used

        Raises:
            StoreUnavailableError: No store binding
            StoreFailureError:     A listing or read failed
        """
        kv = require_store(store)

        window = days or settings.summary_default_days
        today = self.clock().astimezone(timezone.utc).date()
        cutoff = cutoff_date(window, today)

        summary = new_summary()
        cursor: Optional[str] = None
        pages = 0
        scanned = 0

        while True:
            page = await kv.list(prefix=RECORD_PREFIX, limit=settings.summary_page_size, cursor=cursor)
            pages += 1
            scanned += len(page.keys)

            keys = [key for key in page.keys if is_within_window(key, cutoff)]
            if keys:
                entries = await kv.get_many(keys, settings.summary_fetch_concurrency)
                for key, entry in zip(keys, entries):
                    summary = fold_entry(summary, key, entry, cutoff)

            cursor = page.cursor
            if not cursor:
                break

        logger.info(
            "Summary for %d days (cutoff %s): %d records from %d keys in %d pages",
            window,
            cutoff,
            summary.total,
            scanned,
            pages,
        )
        return SummaryResponse(summary=summary, days=window)


# ── Singleton Instance ────────────────────────────────────────────────────
summary_service = SummaryService()
