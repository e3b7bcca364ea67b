from __future__ import annotations
from pathlib import Path
import json
import os
import tempfile
from typing import Any
from dataclasses import is_dataclass, asdict
from enum import Enum


def _safe_default(o: Any):
    """JSON serializer for pydantic models, dataclasses, Paths, Enums and sets."""
    if hasattr(o, "model_dump") and callable(getattr(o, "model_dump")):
        return o.model_dump(mode="json")
    if is_dataclass(o) and not isinstance(o, type):
        return asdict(o)
    if isinstance(o, Path):
        return str(o)
    if isinstance(o, (set, frozenset)):
        return sorted(o)
    if isinstance(o, Enum):
        return o.value
    return str(o)


def to_json(obj: Any) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False, default=_safe_default)


def _write_atomic(path: Path, data: str, suffix: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile("w", delete=False, dir=str(path.parent), prefix=".tmp_",
                                     suffix=suffix, encoding="utf-8") as tmp:
        tmp.write(data)
        tmp_path = Path(tmp.name)
    os.replace(tmp_path, path)


def write_json_atomic(path: Path, obj: Any) -> None:
    _write_atomic(Path(path), to_json(obj) + "\n", ".json")


def write_text_atomic(path: Path, text: str) -> None:
    _write_atomic(Path(path), text, ".md")
