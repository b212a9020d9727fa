"""Write rendered scenes and a storyboard manifest to a directory."""

from __future__ import annotations

import base64
import binascii
import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from .schemas import StoryboardSnapshot

_LOG = logging.getLogger("storyboard_fanout.export")

MANIFEST_NAME = "storyboard.json"


def sniff_extension(data: bytes) -> str:
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "png"
    if data.startswith(b"\xff\xd8\xff"):
        return "jpg"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    return "bin"


def export_storyboard(snapshot: StoryboardSnapshot, out_dir: Path | str, *, prefix: str = "Scene") -> List[Path]:
    """Decode every scene asset to ``<prefix>_<id>.<ext>`` and write the manifest.

    Scenes without an asset are listed in the manifest only. Returns the image
    paths in scene order.
    """

    out_path = Path(out_dir)
    out_path.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    entries: List[Dict[str, Any]] = []
    for scene in snapshot.scenes:
        entry: Dict[str, Any] = {
            "id": scene.id,
            "description": scene.description,
            "phase": scene.phase,
            "failure_reason": scene.failure_reason,
            "file": None,
        }
        if scene.asset:
            try:
                data = base64.b64decode(scene.asset, validate=True)
            except (binascii.Error, ValueError) as exc:
                _LOG.warning("scene %s has an undecodable asset: %s", scene.id, exc)
                entry["error"] = "undecodable asset"
            else:
                image_path = out_path / f"{prefix}_{scene.id}.{sniff_extension(data)}"
                image_path.write_bytes(data)
                entry["file"] = image_path.name
                written.append(image_path)
        entries.append(entry)

    manifest = {
        "run_id": snapshot.run_id,
        "phase": snapshot.phase,
        "scene_count": snapshot.scene_count,
        "scenes": entries,
    }
    (out_path / MANIFEST_NAME).write_text(json.dumps(manifest, indent=2, ensure_ascii=False), encoding="utf-8")
    return written


__all__ = ["MANIFEST_NAME", "export_storyboard", "sniff_extension"]
