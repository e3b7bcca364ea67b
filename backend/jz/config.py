from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Tuple

def _bool(env: str, default: bool = False) -> bool:
    v = os.getenv(env)
    if v is None:
        return default
    return v.lower() in ("1", "true", "yes", "on")

@dataclass
class Settings:
    # Discovery
    IGNORED_DIRS: Tuple[str, ...] = tuple(os.getenv("JZ_IGNORED_DIRS", ".git,.svn,.hg,.idea,.gradle,node_modules").split(","))
    MAX_FILE_MB: int = int(os.getenv("JZ_MAX_FILE_MB", "2"))
    SOURCE_ENCODING: str = os.getenv("JZ_SOURCE_ENCODING", "utf-8")

    # Flow extraction
    FLOW_MAX_DEPTH: int = int(os.getenv("JZ_FLOW_MAX_DEPTH", "3"))

    # Degradation toggles
    CROSS_SERVICE_LINKING: bool = _bool("JZ_CROSS_SERVICE_LINKING", True)

    LOG_LEVEL: str = os.getenv("JZ_LOG_LEVEL", "INFO")

    # CORS
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "http://localhost:3000")

settings = Settings()
