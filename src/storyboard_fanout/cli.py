from __future__ import annotations

"""Command-line interface: run one storyboard locally or serve the HTTP app."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence, TextIO

import uvicorn

from .adapters.common import GatewayConfigError, MissingDependencyError
from .app import create_app
from .config import StoryboardConfig
from .errors import DecompositionFailure, ValidationFailure
from .export import MANIFEST_NAME, export_storyboard
from .gateways import get_gateways
from .orchestrator import StoryboardOrchestrator
from .schemas import SceneRecord, StoryboardSnapshot

LOG = logging.getLogger("storyboard_fanout.cli")

EXIT_OK = 0
EXIT_DECOMPOSITION_FAILED = 1
EXIT_INVALID = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="storyboard-fanout",
        description="Turn a block of text into a storyboard of independently rendered scenes.",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Generate one storyboard and export it")
    source = run_parser.add_mutually_exclusive_group()
    source.add_argument("--text", help="Input text (defaults to stdin)")
    source.add_argument("--input", type=Path, help="Read the input text from a file")
    style = run_parser.add_mutually_exclusive_group()
    style.add_argument("--style", help="Style directive prepended to every scene prompt")
    style.add_argument("--style-file", type=Path, help="Read the style directive from a file")
    run_parser.add_argument("--config", type=Path, help="YAML config file")
    run_parser.add_argument("--out", type=Path, default=Path("storyboard_out"), help="Export directory")
    run_parser.add_argument("--prefix", default="Scene", help="File name prefix for exported images")
    run_parser.add_argument("--fixture", action="store_true", help="Use the deterministic stub gateways")

    serve_parser = subparsers.add_parser("serve", help="Serve the storyboard HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--config", type=Path, help="YAML config file")
    serve_parser.add_argument("--fixture", action="store_true", help="Use the deterministic stub gateways")
    return parser


def load_config(args: argparse.Namespace) -> StoryboardConfig:
    cfg = StoryboardConfig.from_yaml(args.config) if args.config else StoryboardConfig.from_env()
    if args.fixture:
        cfg = cfg.with_overrides({"use_fixture": True})
    return cfg


def _read_text(args: argparse.Namespace, stdin: TextIO) -> str:
    if args.text is not None:
        return args.text
    if args.input is not None:
        return args.input.read_text(encoding="utf-8")
    return stdin.read()


def _resolve_style(args: argparse.Namespace, cfg: StoryboardConfig) -> str:
    if args.style is not None:
        return args.style
    if args.style_file is not None:
        return args.style_file.read_text(encoding="utf-8").strip()
    return cfg.default_style


def _print_transition(event: str, record: Optional[SceneRecord]) -> None:
    if record is None or event not in {"ready", "failed"}:
        return
    if event == "ready":
        print(f"[scene {record.id}] ready")
    else:
        print(f"[scene {record.id}] failed: {record.failure_reason}")


def _print_summary(snapshot: StoryboardSnapshot, out_dir: Path, written: int) -> None:
    failed = [scene.id for scene in snapshot.scenes if scene.phase == "failed"]
    print(f"Storyboard {snapshot.phase}: {written}/{snapshot.scene_count} scenes exported to {out_dir}")
    if failed:
        print(f"Failed scenes: {', '.join(str(scene_id) for scene_id in failed)}")
    print(f"Manifest: {out_dir / MANIFEST_NAME}")


def run_storyboard(args: argparse.Namespace, *, stdin: Optional[TextIO] = None) -> int:
    try:
        cfg = load_config(args)
        text = _read_text(args, stdin or sys.stdin)
        style = _resolve_style(args, cfg)
        decomposer, renderer = get_gateways(cfg)
    except (ValueError, OSError, GatewayConfigError, MissingDependencyError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_INVALID

    orchestrator = StoryboardOrchestrator(decomposer, renderer, config=cfg)
    orchestrator.registry.subscribe(_print_transition)
    try:
        snapshot = asyncio.run(orchestrator.run(text, style))
    except ValidationFailure as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_INVALID
    except DecompositionFailure as exc:
        print(f"Decomposition failed: {exc}", file=sys.stderr)
        return EXIT_DECOMPOSITION_FAILED

    written = export_storyboard(snapshot, args.out, prefix=args.prefix)
    LOG.debug("exported %d scene files to %s", len(written), args.out)
    _print_summary(snapshot, args.out, len(written))
    return EXIT_OK


def run_serve(args: argparse.Namespace) -> int:
    try:
        cfg = load_config(args)
        app = create_app(cfg)
    except (ValueError, OSError, GatewayConfigError, MissingDependencyError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_INVALID
    uvicorn.run(app, host=args.host, port=args.port)
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=str(args.log_level).upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if args.command == "run":
        return run_storyboard(args)
    if args.command == "serve":
        return run_serve(args)
    parser.print_help()
    return EXIT_INVALID


__all__ = ["build_parser", "load_config", "main", "run_serve", "run_storyboard"]


if __name__ == "__main__":
    raise SystemExit(main())
