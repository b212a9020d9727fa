"""In-memory registry of scene records keyed by stable positional id."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from .errors import UnknownRecord
from .schemas import SceneRecord

_LOG = logging.getLogger("storyboard_fanout.scene_registry")

DEFAULT_SCENE_COUNT = 8

RegistryListener = Callable[[str, Optional[SceneRecord]], None]


@dataclass(frozen=True)
class SceneTicket:
    """Proof that a generation was dispatched for one record.

    A settlement only applies when both the storyboard generation and the
    record's attempt counter still match the ticket.
    """

    scene_id: int
    generation: int
    attempt: int


class SceneRegistry:
    def __init__(self, scene_count: int = DEFAULT_SCENE_COUNT) -> None:
        if scene_count <= 0:
            raise ValueError("scene_count must be positive")
        self.scene_count = scene_count
        self._records: Dict[int, SceneRecord] = {}
        self._attempts: Dict[int, int] = {}
        self._generation = 0
        self._lock = threading.RLock()
        self._listeners: List[RegistryListener] = []

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def subscribe(self, listener: RegistryListener) -> Callable[[], None]:
        """Register ``listener(event, record)``; returns an unsubscribe callable."""

        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def clear(self) -> int:
        """Drop every record and invalidate outstanding tickets."""

        with self._lock:
            self._records.clear()
            self._attempts.clear()
            self._generation += 1
            generation = self._generation
        self._notify("cleared", None)
        return generation

    def seed(self, descriptions: Sequence[str]) -> int:
        """Replace the storyboard with pending records ``1..N`` in the given order."""

        if len(descriptions) != self.scene_count:
            raise ValueError(f"expected {self.scene_count} descriptions, got {len(descriptions)}")
        records = {
            idx: SceneRecord(id=idx, description=description)
            for idx, description in enumerate(descriptions, start=1)
        }
        with self._lock:
            self._records = records
            self._attempts = {scene_id: 0 for scene_id in records}
            self._generation += 1
            generation = self._generation
        self._notify("seeded", None)
        return generation

    def get(self, scene_id: int) -> SceneRecord:
        with self._lock:
            return self._require(scene_id)

    def records(self) -> List[SceneRecord]:
        with self._lock:
            return [self._records[key] for key in sorted(self._records)]

    def begin_loading(
        self,
        scene_id: int,
        *,
        description: Optional[str] = None,
        clear_asset: bool = True,
    ) -> Optional[SceneTicket]:
        """Move a record into ``loading`` and hand out a ticket for the dispatch.

        Returns ``None`` when the record is already loading; the duplicate
        request is ignored.
        """

        with self._lock:
            record = self._require(scene_id)
            if record.phase == "loading":
                return None
            update: Dict[str, object] = {"phase": "loading", "failure_reason": None}
            if description is not None:
                update["description"] = description
            if clear_asset:
                update["asset"] = None
            updated = record.model_copy(update=update)
            self._records[scene_id] = updated
            self._attempts[scene_id] = self._attempts.get(scene_id, 0) + 1
            ticket = SceneTicket(scene_id=scene_id, generation=self._generation, attempt=self._attempts[scene_id])
        self._notify("loading", updated)
        return ticket

    def mark_ready(self, ticket: SceneTicket, asset: str) -> bool:
        return self._settle(ticket, {"phase": "ready", "asset": asset, "failure_reason": None}, "ready")

    def mark_failed(self, ticket: SceneTicket, reason: str) -> bool:
        return self._settle(ticket, {"phase": "failed", "failure_reason": reason}, "failed")

    def is_current(self, ticket: SceneTicket) -> bool:
        with self._lock:
            return ticket.generation == self._generation and self._attempts.get(ticket.scene_id) == ticket.attempt

    def _settle(self, ticket: SceneTicket, update: Dict[str, object], event: str) -> bool:
        with self._lock:
            if not self.is_current(ticket):
                _LOG.debug("discarding stale settlement for scene %s: %s", ticket.scene_id, ticket)
                return False
            record = self._records.get(ticket.scene_id)
            if record is None or record.phase != "loading":
                return False
            updated = record.model_copy(update=update)
            self._records[ticket.scene_id] = updated
        self._notify(event, updated)
        return True

    def _require(self, scene_id: int) -> SceneRecord:
        record = self._records.get(scene_id)
        if record is None:
            raise UnknownRecord(scene_id)
        return record

    def _notify(self, event: str, record: Optional[SceneRecord]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, record)
            except Exception:
                _LOG.exception("registry listener failed for event %s", event)


__all__ = ["DEFAULT_SCENE_COUNT", "RegistryListener", "SceneRegistry", "SceneTicket"]
