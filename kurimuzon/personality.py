"""Runtime path resolution and persona loading."""

from __future__ import annotations

import os
from pathlib import Path

from .constants import FALLBACK_PERSONA, PROJECT_ROOT
from .logging_setup import log

PERSONA_FILENAME = "PERSONA.md"


def runtime_root() -> Path:
    """Base directory for runtime files: KURIMUZON_HOME if set, else the project root."""
    runtime_home = os.getenv("KURIMUZON_HOME", "").strip()
    return Path(runtime_home).expanduser().resolve() if runtime_home else PROJECT_ROOT


def resolve_runtime_path(path_value: str) -> Path:
    """Resolve configured paths relative to the runtime root."""
    path = Path(path_value).expanduser()
    if not path.is_absolute():
        path = runtime_root() / path
    return path.resolve()


def load_persona(base_dir: str | Path | None = None) -> str:
    """Load the persona prompt from PERSONA.md, falling back to the built-in one."""
    base = Path(base_dir) if base_dir else runtime_root()
    filepath = base / PERSONA_FILENAME
    if not filepath.exists():
        return FALLBACK_PERSONA

    try:
        content = filepath.read_text(encoding="utf-8").strip()
    except OSError as e:
        log.warning(f"Could not read {filepath}: {e}; using built-in persona")
        return FALLBACK_PERSONA
    return content or FALLBACK_PERSONA
