"""Raw progress documents -> canonical records.

The store is written by two clients over several schema generations, so any
field may be missing, stringly typed or stored under an older name. This is
the only place that knows about those shapes; the coercion helpers never
raise and never let NaN through.
"""
from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from caresim.schemas.progress import LessonProgress, PageState, QuizRecord, SimulationRecord, Track
from caresim.services.gates import QUIZ_MAX_SCORE

_TRUE_STRINGS = frozenset({"true", "yes", "1"})
_FALSE_STRINGS = frozenset({"false", "no", "0"})

# Epoch values above this are milliseconds (the game client writes Date.now())
_EPOCH_MS_CUTOFF = 1e11

# Field names per record, newest first
QUIZ_FIELDS = {
    "completed": ("completed", "isCompleted"),
    "highest_score": ("highestScore", "highest_score", "bestScore"),
    "attempts": ("attempts", "attemptCount"),
    "last_attempt": ("lastAttempt", "last_attempt", "lastAttemptAt"),
    "latest_score": ("latestScore", "latest_score"),
}
SIMULATION_FIELDS = {
    "completed": ("completed", "isCompleted"),
    "passed": ("passed", "isPassed"),
    "score": ("score", "latestScore"),
    "attempts": ("attempts", "attemptCount"),
    "last_attempt": ("lastAttempt", "last_attempt", "lastAttemptAt"),
}
# Attempt log entries: {lesson, score, timestamp, completed, passed}
HISTORY_TIMESTAMP_FIELDS = ("timestamp", "date", "completedAt")
HISTORY_NODE = "history"

_DATETIME_FLOOR = datetime.min.replace(tzinfo=timezone.utc)


def coerce_bool(value: Any, default: bool = False) -> bool:
    """Accept bools, numeric 0/1 and true/false/yes/no/1/0 strings; anything else is ``default``."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        if value == 1:
            return True
        if value == 0:
            return False
        return default
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    return default


def coerce_number(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return default
    if isinstance(value, (int, float, Decimal)):
        try:
            number = float(value)
        except (OverflowError, ValueError):
            return default
        return number if math.isfinite(number) else default
    return default


def coerce_count(value: Any) -> int:
    """Non-negative integer count; fractional counts are floored."""
    return max(0, int(math.floor(coerce_number(value, 0.0))))


def coerce_timestamp(value: Any) -> datetime | None:
    """ISO-8601 strings, datetimes and epoch seconds/milliseconds -> aware UTC datetime."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            number = coerce_number(text, math.nan)
            return _from_epoch(number) if math.isfinite(number) else None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    if isinstance(value, bool) or value is None:
        return None
    number = coerce_number(value, math.nan)
    return _from_epoch(number) if math.isfinite(number) else None


def _from_epoch(number: float) -> datetime | None:
    if number <= 0:
        return None
    if number > _EPOCH_MS_CUTOFF:
        number /= 1000.0
    try:
        return datetime.fromtimestamp(number, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _as_mapping(raw: Any) -> Mapping[str, Any]:
    return raw if isinstance(raw, Mapping) else {}


def _pick(raw: Mapping[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        value = raw.get(name)
        if value is not None:
            return value
    return None


def _clamp_score(score: float) -> float:
    return min(max(score, 0.0), QUIZ_MAX_SCORE)


def _latest(*stamps: datetime | None) -> datetime | None:
    present = [stamp for stamp in stamps if stamp is not None]
    return max(present) if present else None


def history_entries(raw: Any) -> list[Mapping[str, Any]]:
    """Attempt log entries from a push-id map or a list; non-object entries are dropped."""
    if isinstance(raw, Mapping):
        values = raw.values()
    elif isinstance(raw, (list, tuple)):
        values = raw
    else:
        return []
    return [entry for entry in values if isinstance(entry, Mapping)]


def _entry_time(entry: Mapping[str, Any]) -> datetime | None:
    return coerce_timestamp(_pick(entry, HISTORY_TIMESTAMP_FIELDS))


def _most_recent(entries: list[Mapping[str, Any]]) -> Mapping[str, Any]:
    # undated entries keep log order
    ranked = max(enumerate(entries), key=lambda item: (_entry_time(item[1]) or _DATETIME_FLOOR, item[0]))
    return ranked[1]


def normalize_quiz(raw: Any, history: Any = None) -> QuizRecord:
    """Fold the scalar counters and the attempt log into one record.

    ``history`` is the learner-level log for this lesson; when it is empty the
    record's own ``history`` map is used. Only entries with a numeric score
    count as attempts. Counters take the larger of the two sources.
    """
    data = _as_mapping(raw)
    log = [
        entry
        for entry in history_entries(history or data.get("history"))
        if math.isfinite(coerce_number(entry.get("score"), math.nan))
    ]
    scores = [coerce_number(entry.get("score")) for entry in log]

    completed = coerce_bool(_pick(data, QUIZ_FIELDS["completed"]), False) or any(
        coerce_bool(entry.get("completed"), True) for entry in log
    )
    attempts = max(coerce_count(_pick(data, QUIZ_FIELDS["attempts"])), len(log))
    if completed and attempts == 0:
        # a completion flag means the attempt counter write is lagging
        attempts = 1
    highest = max([coerce_number(_pick(data, QUIZ_FIELDS["highest_score"])), *scores])

    latest = coerce_number(_pick(data, QUIZ_FIELDS["latest_score"]), math.nan)
    if not math.isfinite(latest) and log:
        latest = coerce_number(_most_recent(log).get("score"))
    return QuizRecord(
        completed=completed,
        highest_score=_clamp_score(highest),
        attempts=attempts,
        last_attempt=_latest(
            coerce_timestamp(_pick(data, QUIZ_FIELDS["last_attempt"])),
            *(_entry_time(entry) for entry in log),
        ),
        latest_score=_clamp_score(latest) if math.isfinite(latest) else None,
    )


def normalize_simulation(raw: Any, history: Any = None) -> SimulationRecord:
    """Same folding as quizzes; any passed run passes, any finished run completes."""
    data = _as_mapping(raw)
    runs = history_entries(history or data.get("history"))

    passed = coerce_bool(_pick(data, SIMULATION_FIELDS["passed"]), False) or any(
        coerce_bool(run.get("passed"), False) for run in runs
    )
    # a pass implies the run was completed
    completed = (
        passed
        or coerce_bool(_pick(data, SIMULATION_FIELDS["completed"]), False)
        or any(coerce_bool(run.get("completed"), False) for run in runs)
    )
    attempts = max(coerce_count(_pick(data, SIMULATION_FIELDS["attempts"])), len(runs))
    if completed and attempts == 0:
        attempts = 1

    score = coerce_number(_pick(data, SIMULATION_FIELDS["score"]), math.nan)
    if not math.isfinite(score) and runs:
        score = coerce_number(_most_recent(runs).get("score"))
    return SimulationRecord(
        completed=completed,
        passed=passed,
        score=max(score, 0.0) if math.isfinite(score) else 0.0,
        attempts=attempts,
        last_attempt=_latest(
            coerce_timestamp(_pick(data, SIMULATION_FIELDS["last_attempt"])),
            *(_entry_time(run) for run in runs),
        ),
    )


def normalize_pages(raw: Any) -> PageState:
    """Recognise both page schemas: the per-page map/count and the legacy flags."""
    data = _as_mapping(raw)
    count = coerce_count(data.get("completedPagesCount"))
    pages_map = data.get("completedPages")
    if isinstance(pages_map, (Mapping, list, tuple)):
        count = max(count, len(pages_map))
    legacy_flag = coerce_bool(data.get("hasPages"), False) or coerce_bool(data.get("lastAssessmentPassed"), False)
    return PageState(has_pages=count > 0 or legacy_flag, completed_pages_count=count)


def normalize_lesson(raw_lesson: Any, track: Track) -> LessonProgress:
    """Split one raw lesson document into the canonical triple for ``track``.

    A ``history`` node carries the learner-level ``quizzes``/``simulations``
    log entries for this lesson, attached by the store.
    """
    data = _as_mapping(raw_lesson)
    history = _as_mapping(data.get(HISTORY_NODE))
    return LessonProgress(
        pages=normalize_pages(data) if track is Track.LMS else None,
        quiz=normalize_quiz(data.get("quiz"), history.get("quizzes")),
        simulation=normalize_simulation(data.get("simulation"), history.get("simulations")),
    )
