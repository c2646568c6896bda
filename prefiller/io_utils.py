"""Run directories and artifact writing for CLI runs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import json
import secrets
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

DATA_DIR = Path.cwd() / "data"


@dataclass(slots=True)
class RunPaths:
    """Directories belonging to one CLI invocation."""

    run_id: str
    step_name: str
    base_dir: Path
    step_dir: Path

    def build_path(self, filename: str) -> Path:
        """Return a path inside the step directory, creating parents."""
        path = self.step_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        return path


def generate_run_id() -> str:
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    suffix = secrets.token_hex(2)
    return f"{timestamp}-{suffix}"


def prepare_run_directories(
    run_id: str, step_name: str, data_dir: Optional[Path] = None
) -> RunPaths:
    base_dir = (data_dir or DATA_DIR) / run_id
    step_dir = base_dir / step_name
    step_dir.mkdir(parents=True, exist_ok=True)
    return RunPaths(run_id=run_id, step_name=step_name, base_dir=base_dir, step_dir=step_dir)


def write_json(path: Path, payload: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=False)
    return path


def read_documents(paths: Iterable[Path]) -> List[Tuple[str, str]]:
    """Load text files as ``(name, content)`` pairs for the personal context."""
    documents: List[Tuple[str, str]] = []
    for path in paths:
        documents.append((path.name, path.read_text(encoding="utf-8")))
    return documents


__all__ = [
    "RunPaths",
    "generate_run_id",
    "prepare_run_directories",
    "write_json",
    "read_documents",
]
