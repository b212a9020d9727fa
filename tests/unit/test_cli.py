from __future__ import annotations

import io
import json
import os
import subprocess
import sys
from pathlib import Path
from typing import Any, Tuple

import pytest

from storyboard_fanout import cli
from storyboard_fanout.adapters.stub_adapter import StubDecomposer, StubRenderer
from storyboard_fanout.errors import GenerationFailure


def test_run_in_fixture_mode_exports_storyboard(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    out_dir = tmp_path / "out"
    rc = cli.main(["run", "--fixture", "--text", "The court opened. The judge spoke.", "--out", str(out_dir)])

    assert rc == 0
    assert sorted(path.name for path in out_dir.glob("Scene_*.png")) == sorted(f"Scene_{idx}.png" for idx in range(1, 9))
    manifest = json.loads((out_dir / "storyboard.json").read_text(encoding="utf-8"))
    assert manifest["phase"] == "complete"
    assert [scene["description"] for scene in manifest["scenes"]][:3] == [
        "The court opened",
        "The judge spoke",
        "The court opened",
    ]
    out = capsys.readouterr().out
    assert "[scene 1] ready" in out
    assert "8/8 scenes exported" in out


def test_run_reads_input_file_and_style_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    renderer = StubRenderer()
    monkeypatch.setattr(cli, "get_gateways", lambda cfg: (StubDecomposer(), renderer))
    text_path = tmp_path / "input.txt"
    text_path.write_text("Only one scene here.", encoding="utf-8")
    style_path = tmp_path / "style.txt"
    style_path.write_text("  Etching, high contrast \n", encoding="utf-8")

    rc = cli.main(
        [
            "run",
            "--input",
            str(text_path),
            "--style-file",
            str(style_path),
            "--out",
            str(tmp_path / "out"),
            "--prefix",
            "Legal_Scene",
        ]
    )

    assert rc == 0
    assert {style for _, style in renderer.calls} == {"Etching, high contrast"}
    assert (tmp_path / "out" / "Legal_Scene_8.png").exists()


def test_run_reads_stdin(tmp_path: Path) -> None:
    parser = cli.build_parser()
    args = parser.parse_args(["run", "--fixture", "--out", str(tmp_path)])
    rc = cli.run_storyboard(args, stdin=io.StringIO("A single sentence"))
    assert rc == 0
    manifest = json.loads((tmp_path / "storyboard.json").read_text(encoding="utf-8"))
    assert {scene["description"] for scene in manifest["scenes"]} == {"A single sentence"}


def test_failed_scenes_are_listed(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    renderer = StubRenderer(failures={"b": GenerationFailure("blocked")})
    monkeypatch.setattr(cli, "get_gateways", lambda cfg: (StubDecomposer(["a", "b"]), renderer))

    rc = cli.main(["run", "--text", "text", "--out", str(tmp_path)])

    assert rc == 0
    out = capsys.readouterr().out
    assert "[scene 2] failed: blocked" in out
    assert "Failed scenes: 2, 4, 6, 8" in out


def test_blank_text_exits_with_validation_code(tmp_path: Path) -> None:
    rc = cli.main(["run", "--fixture", "--text", "   ", "--out", str(tmp_path)])
    assert rc == 2
    assert not (tmp_path / "storyboard.json").exists()


def test_decomposition_failure_exit_code(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def gateways(cfg: Any) -> Tuple[StubDecomposer, StubRenderer]:
        return StubDecomposer(error=RuntimeError("model offline")), StubRenderer()

    monkeypatch.setattr(cli, "get_gateways", gateways)
    rc = cli.main(["run", "--text", "text", "--out", str(tmp_path)])
    assert rc == 1


def test_missing_api_key_is_reported(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rc = cli.main(["run", "--text", "text", "--out", str(tmp_path)])
    assert rc == 2
    assert "API key" in capsys.readouterr().err


def test_config_file_is_applied(tmp_path: Path) -> None:
    config_path = tmp_path / "storyboard.yaml"
    config_path.write_text("scene_count: 3\nuse_fixture: true\n", encoding="utf-8")
    out_dir = tmp_path / "out"

    rc = cli.main(["run", "--config", str(config_path), "--text", "One. Two. Three. Four.", "--out", str(out_dir)])

    assert rc == 0
    assert len(list(out_dir.glob("Scene_*.png"))) == 3


def test_serve_runs_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = {}

    def fake_run(app: Any, host: str, port: int) -> None:
        calls.update({"app": app, "host": host, "port": port})

    monkeypatch.setattr(cli.uvicorn, "run", fake_run)
    rc = cli.main(["serve", "--fixture", "--port", "9001"])

    assert rc == 0
    assert calls["host"] == "127.0.0.1"
    assert calls["port"] == 9001
    assert calls["app"].state.orchestrator is not None


def test_no_command_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main([]) == 2
    assert "usage" in capsys.readouterr().out


def test_module_entrypoint_and_exports() -> None:
    assert all(hasattr(cli, name) for name in cli.__all__)
    src = Path(__file__).resolve().parents[2] / "src"
    env = {**os.environ, "PYTHONPATH": os.pathsep.join(filter(None, [str(src), os.environ.get("PYTHONPATH")]))}
    result = subprocess.run(
        [sys.executable, "-m", "storyboard_fanout.cli"], capture_output=True, text=True, env=env
    )
    assert result.returncode == 2
    assert "usage: storyboard-fanout" in result.stdout
