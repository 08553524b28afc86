"""Read adapters for the raw progress store.

The store belongs to the LMS and Game clients. Adapters here only answer
"what is currently stored for learner U, track T, lesson L"; absence is
``None``, and read failures propagate to the caller untouched.
"""
from __future__ import annotations

import asyncio
import json
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from caresim.core.config import get_settings
from caresim.core.errors import ProgressStoreError
from caresim.core.logging import DOMAIN_PROGRESS, get_domain_logger
from caresim.models.progress import ProgressDocument
from caresim.schemas.progress import Track
from caresim.services.normalizer import HISTORY_NODE, history_entries

logger = get_domain_logger(__name__, DOMAIN_PROGRESS)

# Where each track lives under users/{uid} in the exported document
TRACK_ROOTS = {
    Track.LMS: "lmsProgress",
    Track.GAME: "progress",
}
# users/{uid}/history/{quizzes,simulations} is written by the game client
HISTORY_TRACK = Track.GAME
HISTORY_KINDS = ("quizzes", "simulations")

_LESSON_NODE = re.compile(r"lesson([1-9][0-9]*)")
_LESSON_NUMBER = re.compile(r"[0-9]+")


def lesson_node(lesson_key: int) -> str:
    return f"lesson{lesson_key}"


def lesson_key_from_node(node: Any) -> int | None:
    """``lesson3`` -> 3; anything else (``lesson03``, ``lesson²``, ``notes``) -> None."""
    if not isinstance(node, str):
        return None
    match = _LESSON_NODE.fullmatch(node)
    return int(match.group(1)) if match else None


def history_lesson_key(entry: Mapping[str, Any]) -> int | None:
    """History entries name their lesson as ``3``, ``"3"`` or ``"Lesson 3"``."""
    lesson = entry.get("lesson")
    if isinstance(lesson, int) and not isinstance(lesson, bool):
        return lesson
    if isinstance(lesson, str):
        match = _LESSON_NUMBER.search(lesson)
        if match:
            return int(match.group(0))
    return None


def _decode(payload: str, learner_id: str, track: Track, lesson_key: int) -> Any:
    try:
        return json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ProgressStoreError(
            f"undecodable progress document for {learner_id}/{Track(track).value}/{lesson_node(lesson_key)}"
        ) from exc


class ProgressStore(ABC):
    @abstractmethod
    async def read_lesson(self, learner_id: str, track: Track, lesson_key: int) -> Mapping[str, Any] | None:
        """Return the raw lesson document, or None when nothing is stored."""

    @abstractmethod
    async def learner_ids(self, track: Track) -> list[str]:
        """Learners with at least one lesson document on ``track``."""

    async def read_track(
        self, learner_id: str, track: Track, lesson_keys: list[int]
    ) -> list[Mapping[str, Any] | None]:
        """Read several lesson slots at once, in ``lesson_keys`` order.

        Slots have no ordering dependency, so the reads run concurrently;
        the first failure propagates and no partial result is returned.
        """
        return list(
            await asyncio.gather(*(self.read_lesson(learner_id, track, key) for key in lesson_keys))
        )


class SnapshotProgressStore(ProgressStore):
    """In-memory store over an exported ``{"users": {uid: {...}}}`` document.

    Learner-level attempt history is grouped by lesson and attached to the
    matching Game lesson under ``history``, so readers see one document per slot.
    """

    def __init__(self, document: Mapping[str, Any]):
        users = document.get("users") if isinstance(document, Mapping) else None
        self._users: Mapping[str, Any] = users if isinstance(users, Mapping) else {}

    def _user(self, learner_id: str) -> Mapping[str, Any]:
        user = self._users.get(learner_id)
        return user if isinstance(user, Mapping) else {}

    def _track_root(self, learner_id: str, track: Track) -> Mapping[str, Any]:
        root = self._user(learner_id).get(TRACK_ROOTS[Track(track)])
        return root if isinstance(root, Mapping) else {}

    def _history(self, learner_id: str, track: Track) -> dict[int, dict[str, list]]:
        """{lesson_key: {"quizzes": [...], "simulations": [...]}} for ``track``."""
        if Track(track) is not HISTORY_TRACK:
            return {}
        history = self._user(learner_id).get(HISTORY_NODE)
        if not isinstance(history, Mapping):
            return {}
        grouped: dict[int, dict[str, list]] = {}
        for kind in HISTORY_KINDS:
            for entry in history_entries(history.get(kind)):
                lesson_key = history_lesson_key(entry)
                if lesson_key is not None:
                    grouped.setdefault(lesson_key, {}).setdefault(kind, []).append(entry)
        return grouped

    def _lesson(self, learner_id: str, track: Track, lesson_key: int) -> Any:
        document = self._track_root(learner_id, track).get(lesson_node(lesson_key))
        history = self._history(learner_id, track).get(lesson_key)
        if not history:
            return document
        merged = dict(document) if isinstance(document, Mapping) else {}
        merged[HISTORY_NODE] = history
        return merged

    async def read_lesson(self, learner_id: str, track: Track, lesson_key: int) -> Mapping[str, Any] | None:
        return self._lesson(learner_id, track, lesson_key)

    async def learner_ids(self, track: Track) -> list[str]:
        return sorted(
            uid for uid in self._users if self._track_root(uid, track) or self._history(uid, track)
        )

    def lesson_documents(self):
        """Yield (learner_id, track, lesson_key, payload) for every lesson slot with data."""
        for uid in self._users:
            for track in Track:
                keys = {lesson_key_from_node(node) for node in self._track_root(uid, track)}
                keys.discard(None)
                keys.update(self._history(uid, track))
                for lesson_key in sorted(keys):
                    yield uid, track, lesson_key, self._lesson(uid, track, lesson_key)


class SqlProgressStore(ProgressStore):
    """Reads ``progress_documents`` rows through an async session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def read_lesson(self, learner_id: str, track: Track, lesson_key: int) -> Mapping[str, Any] | None:
        result = await self.db.execute(
            select(ProgressDocument.payload_json).where(
                ProgressDocument.learner_id == learner_id,
                ProgressDocument.track == Track(track).value,
                ProgressDocument.lesson_key == lesson_key,
            )
        )
        payload = result.scalar_one_or_none()
        if payload is None:
            return None
        return _decode(payload, learner_id, track, lesson_key)

    async def read_track(
        self, learner_id: str, track: Track, lesson_keys: list[int]
    ) -> list[Mapping[str, Any] | None]:
        # An AsyncSession cannot run statements concurrently; one query covers every slot.
        result = await self.db.execute(
            select(ProgressDocument.lesson_key, ProgressDocument.payload_json).where(
                ProgressDocument.learner_id == learner_id,
                ProgressDocument.track == Track(track).value,
                ProgressDocument.lesson_key.in_(lesson_keys),
            )
        )
        payloads = {key: payload for key, payload in result.all()}
        return [
            _decode(payloads[key], learner_id, track, key) if key in payloads else None
            for key in lesson_keys
        ]

    async def learner_ids(self, track: Track) -> list[str]:
        result = await self.db.execute(
            select(ProgressDocument.learner_id)
            .where(ProgressDocument.track == Track(track).value)
            .distinct()
            .order_by(ProgressDocument.learner_id)
        )
        return list(result.scalars().all())


async def import_snapshot(db: AsyncSession, document: Mapping[str, Any], curriculum_size: int | None = None) -> int:
    """Upsert every lesson document of an exported snapshot; returns the number written.

    Slots outside ``1..curriculum_size`` are skipped.
    """
    size = get_settings().curriculum_size if curriculum_size is None else curriculum_size
    snapshot = SnapshotProgressStore(document)
    written = 0
    skipped = 0
    for learner_id, track, lesson_key, payload in snapshot.lesson_documents():
        if not 1 <= lesson_key <= size:
            skipped += 1
            continue
        result = await db.execute(
            select(ProgressDocument).where(
                ProgressDocument.learner_id == learner_id,
                ProgressDocument.track == track.value,
                ProgressDocument.lesson_key == lesson_key,
            )
        )
        row = result.scalar_one_or_none()
        payload_json = json.dumps(payload)
        if row is None:
            db.add(
                ProgressDocument(
                    learner_id=learner_id,
                    track=track.value,
                    lesson_key=lesson_key,
                    payload_json=payload_json,
                )
            )
        else:
            row.payload_json = payload_json
        written += 1
    await db.commit()
    if skipped:
        logger.warning("Snapshot import skipped %d lesson slot(s) outside 1..%d", skipped, size)
    return written
