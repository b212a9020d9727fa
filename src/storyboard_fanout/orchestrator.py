"""Storyboard workflow: decompose once, then render every scene concurrently.

Usage (programmatic):
    orchestrator = StoryboardOrchestrator(decomposer, renderer)
    snapshot = await orchestrator.run(text, style)
    record = await orchestrator.regenerate(3, "new description", style=style)

Every render settles into exactly one record transition as soon as it
finishes; observers registered with `subscribe` receive a fresh snapshot after
each mutation. All methods must be called from the event loop that runs the
renders.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Coroutine, List, Optional, Set, Tuple

from . import telemetry
from .config import StoryboardConfig
from .decomposition import Decomposer, decompose_text
from .errors import DecompositionFailure, GenerationFailure, ValidationFailure
from .rendering import Renderer, failure_reason
from .scene_registry import SceneRegistry, SceneTicket
from .schemas import RunPhase, SceneRecord, StoryboardSnapshot

_LOG = logging.getLogger("storyboard_fanout.orchestrator")

SnapshotListener = Callable[[StoryboardSnapshot], None]


@dataclass
class _RunState:
    run_id: str
    scene_count: int
    settled: int = 0
    done: asyncio.Event = field(default_factory=asyncio.Event)

    def mark_settled(self) -> None:
        self.settled += 1
        if self.settled >= self.scene_count:
            self.done.set()


class StoryboardOrchestrator:
    def __init__(
        self,
        decomposer: Decomposer,
        renderer: Renderer,
        *,
        config: Optional[StoryboardConfig] = None,
        registry: Optional[SceneRegistry] = None,
    ) -> None:
        self.config = config or StoryboardConfig()
        self.registry = registry or SceneRegistry(self.config.scene_count)
        if self.registry.scene_count != self.config.scene_count:
            raise ValueError("registry scene_count does not match config.scene_count")
        self.decomposer = decomposer
        self.renderer = renderer
        self._phase: RunPhase = "idle"
        self._run: Optional[_RunState] = None
        self._error: Optional[str] = None
        self._listeners: List[SnapshotListener] = []
        self._tasks: Set[asyncio.Task[Any]] = set()
        self._muted = 0
        self.registry.subscribe(self._on_registry_event)

    @property
    def phase(self) -> RunPhase:
        return self._phase

    def snapshot(self) -> StoryboardSnapshot:
        run = self._run
        return StoryboardSnapshot(
            run_id=run.run_id if run else None,
            phase=self._phase,
            scene_count=self.config.scene_count,
            settled=run.settled if run else 0,
            error=self._error,
            scenes=self.registry.records(),
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------ runs

    async def run(self, text: str, style: str) -> StoryboardSnapshot:
        """Decompose ``text`` and render every scene under ``style``.

        Raises `ValidationFailure` for blank text (no state change) and
        `DecompositionFailure` when the decomposition call fails (phase back
        to idle, no records). Render failures are recorded per scene and never
        raise. If another run starts before this one finishes, this run stops
        touching shared state and returns the current snapshot.
        """

        _validate_text(text)
        run = _RunState(run_id=uuid.uuid4().hex, scene_count=self.config.scene_count)
        self._run = run
        self._error = None
        self._phase = "decomposing"
        self.registry.clear()
        telemetry.emit_event("storyboard.run.started", {"run_id": run.run_id, "scene_count": run.scene_count})
        _LOG.info("run %s: decomposing %d characters", run.run_id, len(text))

        try:
            descriptions = await decompose_text(
                self.decomposer,
                text,
                self.config.scene_count,
                fallback=self.config.fallback_description,
            )
        except DecompositionFailure as exc:
            self._fail_run(run, exc)
            raise
        except Exception as exc:
            failure = DecompositionFailure("Decomposition failed", cause=exc)
            self._fail_run(run, failure)
            raise failure from exc

        if self._run is not run:
            _LOG.info("run %s superseded during decomposition", run.run_id)
            return self.snapshot()

        self.registry.seed(descriptions)
        self._set_phase("generating")
        telemetry.emit_event("storyboard.run.decomposed", {"run_id": run.run_id, "scenes": len(descriptions)})

        for scene_id, description in enumerate(descriptions, start=1):
            ticket = self.registry.begin_loading(scene_id)
            if ticket is None:  # pragma: no cover - freshly seeded records are pending
                run.mark_settled()
                continue
            self._spawn(self._render_scene(ticket, description, style, run))

        await run.done.wait()

        if self._run is run:
            self._set_phase("complete")
        snapshot = self.snapshot()
        ready = sum(1 for scene in snapshot.scenes if scene.phase == "ready")
        telemetry.emit_event(
            "storyboard.run.completed",
            {"run_id": run.run_id, "ready": ready, "failed": run.scene_count - ready, "current": self._run is run},
        )
        _LOG.info("run %s complete: %d/%d scenes ready", run.run_id, ready, run.scene_count)
        return snapshot

    def _fail_run(self, run: _RunState, exc: DecompositionFailure) -> None:
        telemetry.emit_event("storyboard.run.failed", {"run_id": run.run_id, "error": str(exc)})
        if self._run is run:
            self._error = str(exc)
            self._set_phase("idle")
        _LOG.warning("run %s: decomposition failed: %s", run.run_id, exc)

    def submit_run(self, text: str, style: str) -> asyncio.Task[Any]:
        """Validate ``text`` now and run the workflow as a background task."""

        _validate_text(text)
        return self._spawn(self._run_in_background(text, style))

    async def _run_in_background(self, text: str, style: str) -> Optional[StoryboardSnapshot]:
        try:
            return await self.run(text, style)
        except DecompositionFailure:
            # already recorded on the snapshot
            return None

    # ---------------------------------------------------------- regeneration

    async def regenerate(self, scene_id: int, description: Optional[str] = None, *, style: str) -> SceneRecord:
        """Re-render one scene under the ``style`` supplied by the caller.

        Raises `UnknownRecord` for ids outside the current storyboard. A scene
        that is already loading is returned unchanged and no render is
        dispatched.
        """

        started = self._begin_regeneration(scene_id, description)
        if started is not None:
            ticket, prompt_description = started
            await self._render_scene(ticket, prompt_description, style)
        return self.registry.get(scene_id)

    def submit_regeneration(self, scene_id: int, description: Optional[str] = None, *, style: str) -> SceneRecord:
        """Start a regeneration in the background and return the record as it is now."""

        started = self._begin_regeneration(scene_id, description)
        if started is not None:
            ticket, prompt_description = started
            self._spawn(self._render_scene(ticket, prompt_description, style))
        return self.registry.get(scene_id)

    def _begin_regeneration(
        self, scene_id: int, description: Optional[str]
    ) -> Optional[Tuple[SceneTicket, str]]:
        if description is not None and not description.strip():
            raise ValidationFailure("description must be non-empty when supplied")
        current = self.registry.get(scene_id)
        ticket = None
        if current.phase != "pending":
            ticket = self.registry.begin_loading(
                scene_id,
                description=description.strip() if description is not None else None,
                clear_asset=self.config.clear_asset_on_regenerate,
            )
        if ticket is None:
            _LOG.debug("scene %s is %s; regeneration ignored", scene_id, current.phase)
            telemetry.emit_event("storyboard.regenerate.ignored", {"scene_id": scene_id, "phase": current.phase})
            return None
        telemetry.emit_event(
            "storyboard.regenerate.started",
            {"scene_id": scene_id, "description_changed": description is not None},
        )
        return ticket, self.registry.get(scene_id).description

    # ------------------------------------------------------------- internals

    async def _render_scene(
        self,
        ticket: SceneTicket,
        description: str,
        style: str,
        run: Optional[_RunState] = None,
    ) -> None:
        try:
            try:
                asset = await self.renderer.render(description, style)
                if not isinstance(asset, str) or not asset:
                    raise GenerationFailure("Renderer returned an empty payload", scene_id=ticket.scene_id)
            except Exception as exc:
                reason = failure_reason(exc)
                applied = self._settle(run, lambda: self.registry.mark_failed(ticket, reason))
                if applied:
                    _LOG.warning("scene %s failed: %s", ticket.scene_id, reason)
                    telemetry.emit_event("storyboard.scene.failed", {"scene_id": ticket.scene_id, "reason": reason})
            else:
                applied = self._settle(run, lambda: self.registry.mark_ready(ticket, asset))
                if applied:
                    telemetry.emit_event("storyboard.scene.ready", {"scene_id": ticket.scene_id})
            if not applied:
                telemetry.emit_event(
                    "storyboard.scene.stale",
                    {"scene_id": ticket.scene_id, "generation": ticket.generation, "attempt": ticket.attempt},
                )
        finally:
            if run is not None:
                run.mark_settled()
                if self._run is run:
                    self._publish()

    def _settle(self, run: Optional[_RunState], apply: Callable[[], bool]) -> bool:
        # run-scoped settlements publish once, after the settled count moves
        if run is None:
            return apply()
        self._muted += 1
        try:
            return apply()
        finally:
            self._muted -= 1

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _LOG.error("background storyboard task failed", exc_info=exc)

    async def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait for background tasks without cancelling them.

        Returns False when ``timeout`` elapses with tasks still running.
        """

        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while self._tasks:
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                return False
            await asyncio.wait(list(self._tasks), timeout=remaining)
        return True

    def _set_phase(self, phase: RunPhase) -> None:
        self._phase = phase
        self._publish()

    def _on_registry_event(self, event: str, record: Optional[SceneRecord]) -> None:
        if self._muted:
            return
        self._publish()

    def _publish(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                _LOG.exception("snapshot listener failed")


def _validate_text(text: str) -> None:
    if not isinstance(text, str) or not text.strip():
        raise ValidationFailure("text must be a non-empty string")


__all__ = ["SnapshotListener", "StoryboardOrchestrator"]
