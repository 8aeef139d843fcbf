from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

INDEX_TOKEN = "$i"


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def ensure_parent(path: Path) -> Path:
    ensure_dir(path.parent)
    return path


def render_path(template: str, index: object) -> Path:
    """Output path with every ``$i`` replaced by the iteration index."""
    return Path(template.replace(INDEX_TOKEN, str(index)))


def dumps_records(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _write_text(path: Path, text: str) -> None:
    ensure_parent(path)
    path.write_text(text, encoding="utf-8")


async def write_json(path: Path, data: Any) -> Path:
    """Write ``data`` as 2-space indented UTF-8 JSON, creating parent directories."""
    await asyncio.to_thread(_write_text, path, dumps_records(data))
    return path
