"""
Directory walk that feeds the analysis core.

The core only ever sees the SourceInventory produced here: sorted lists of
descriptor and source paths. Keeping the walk in one place means every scanner
works on the same filesystem snapshot.
"""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from .config import settings
from .errors import RootNotFoundError
from .scanners.liberty import SERVER_XML
from .scanners.osgi_manifest import is_manifest

logger = logging.getLogger(__name__)


@dataclass
class SourceInventory:
    root: str
    manifests: List[str] = field(default_factory=list)
    server_xmls: List[str] = field(default_factory=list)
    web_xmls: List[str] = field(default_factory=list)
    java_files: List[str] = field(default_factory=list)


def discover_sources(root: str | Path) -> SourceInventory:
    """Walk ``root`` once, pruning ignored directories."""
    root_path = Path(root)
    if not root_path.is_dir():
        raise RootNotFoundError(str(root))

    inventory = SourceInventory(root=str(root_path))
    ignored = set(settings.IGNORED_DIRS)

    for dirpath, dirnames, filenames in os.walk(root_path):
        dirnames[:] = sorted(d for d in dirnames if d not in ignored)
        for name in sorted(filenames):
            full = os.path.join(dirpath, name)
            if is_manifest(name):
                inventory.manifests.append(full)
            elif name == SERVER_XML:
                inventory.server_xmls.append(full)
            elif name == "web.xml" and os.path.basename(dirpath) == "WEB-INF":
                inventory.web_xmls.append(full)
            elif name.endswith(".java"):
                inventory.java_files.append(full)

    logger.info(
        f"Discovered {len(inventory.java_files)} Java files, {len(inventory.manifests)} manifests, "
        f"{len(inventory.server_xmls)} server.xml under {root_path}"
    )
    return inventory
