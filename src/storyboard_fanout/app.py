from __future__ import annotations

"""FastAPI surface for the storyboard workflow.

Endpoints:
- `GET /health`, `GET /ready`: liveness and readiness.
- `GET /storyboard`: current `StoryboardSnapshot` (poll it for incremental updates).
- `GET /style`, `PUT /style`: the global style directive used by later runs
  and regenerations.
- `POST /runs`: start a run (`RunRequest`); `?wait=true` blocks until complete.
- `POST /scenes/{scene_id}/regenerate`: re-render one scene
  (`RegenerationRequest`); `?wait=true` blocks until it settles.

Errors use the envelope `{"error": {"code", "message", "details"}}`.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from . import telemetry
from .config import StoryboardConfig
from .errors import DecompositionFailure, UnknownRecord, ValidationFailure
from .gateways import get_gateways
from .orchestrator import StoryboardOrchestrator
from .schemas import RegenerationRequest, RunRequest, StyleUpdate

LOG = logging.getLogger("storyboard_fanout.app")

_SHUTDOWN_GRACE_S = 2.0


def create_app(
    config: StoryboardConfig | None = None,
    *,
    orchestrator: StoryboardOrchestrator | None = None,
) -> FastAPI:
    """Create the app; builds gateways from ``config`` unless an orchestrator is given."""

    if orchestrator is None:
        cfg = config or StoryboardConfig.from_env()
        decomposer, renderer = get_gateways(cfg)
        orchestrator = StoryboardOrchestrator(decomposer, renderer, config=cfg)
    else:
        cfg = config or orchestrator.config
    board = orchestrator

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.ready = True
        app.state.shutting_down = False
        LOG.info("storyboard app ready (scene_count=%s)", cfg.scene_count)
        telemetry.emit_event("app.ready", {"scene_count": cfg.scene_count, "fixture": cfg.use_fixture})
        try:
            yield
        finally:
            app.state.shutting_down = True
            if not await board.drain(timeout=_SHUTDOWN_GRACE_S):
                LOG.warning("shutting down with storyboard renders still in flight")

    app = FastAPI(title="Storyboard Fan-out", lifespan=lifespan)
    app.state.orchestrator = board
    app.state.style = cfg.default_style
    app.state.ready = False
    app.state.shutting_down = False

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        LOG.debug("validation error", exc_info=exc)
        return JSONResponse(status_code=400, content={"detail": exc.errors()})

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
        content = exc.detail if isinstance(exc.detail, dict) else {
            "error": {"code": "storyboard_failure", "message": str(exc.detail), "details": {}}
        }
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/ready")
    def ready() -> Dict[str, Any]:
        return {
            "ready": bool(getattr(app.state, "ready", False)),
            "shutting_down": bool(getattr(app.state, "shutting_down", False)),
        }

    @app.get("/storyboard")
    async def get_storyboard() -> Dict[str, Any]:
        return board.snapshot().model_dump()

    @app.get("/style")
    async def get_style() -> Dict[str, str]:
        return {"style": app.state.style}

    @app.put("/style")
    async def put_style(update: StyleUpdate) -> Dict[str, str]:
        app.state.style = update.style
        return {"style": app.state.style}

    @app.post("/runs")
    async def submit_run(req: RunRequest, wait: bool = False) -> JSONResponse:
        _ensure_accepting(app)
        if req.style is not None:
            app.state.style = req.style
        style = app.state.style
        try:
            if wait:
                snapshot = await board.run(req.text, style)
                return JSONResponse(status_code=status.HTTP_200_OK, content=snapshot.model_dump())
            board.submit_run(req.text, style)
        except ValidationFailure as exc:
            raise _http_error(status.HTTP_400_BAD_REQUEST, "validation_failure", str(exc)) from exc
        except DecompositionFailure as exc:
            raise _http_error(status.HTTP_502_BAD_GATEWAY, "decomposition_failure", str(exc)) from exc
        return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=board.snapshot().model_dump())

    @app.post("/scenes/{scene_id}/regenerate")
    async def regenerate_scene(
        scene_id: int,
        req: Optional[RegenerationRequest] = None,
        wait: bool = False,
    ) -> JSONResponse:
        _ensure_accepting(app)
        description = req.description if req is not None else None
        style = app.state.style
        try:
            if wait:
                record = await board.regenerate(scene_id, description, style=style)
                return JSONResponse(status_code=status.HTTP_200_OK, content=record.model_dump())
            record = board.submit_regeneration(scene_id, description, style=style)
        except UnknownRecord as exc:
            raise _http_error(
                status.HTTP_404_NOT_FOUND, "unknown_record", str(exc), details={"scene_id": scene_id}
            ) from exc
        except ValidationFailure as exc:
            raise _http_error(status.HTTP_400_BAD_REQUEST, "validation_failure", str(exc)) from exc
        return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=record.model_dump())

    return app


def _ensure_accepting(app: FastAPI) -> None:
    if getattr(app.state, "shutting_down", False):
        raise _http_error(status.HTTP_503_SERVICE_UNAVAILABLE, "shutting_down", "shutting down")


def _http_error(
    status_code: int,
    code: str,
    message: str,
    *,
    details: Optional[Dict[str, Any]] = None,
) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"error": {"code": code, "message": message, "details": details or {}}},
    )


__all__ = ["create_app"]
