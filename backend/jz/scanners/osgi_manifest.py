"""
OSGi bundle manifest scanner.

Reads META-INF/MANIFEST.MF headers, including RFC-822 continuation lines,
into Bundle records. Manifests without a Bundle-SymbolicName are plain JAR
manifests and do not describe a bundle.
"""
import logging
from typing import Dict, Iterable, List, Optional

from ..config import settings
from ..models import Bundle
from ..observability import record_fallback, record_detector_hit

logger = logging.getLogger(__name__)

MANIFEST_NAME = "MANIFEST.MF"


def is_manifest(filename: str) -> bool:
    return filename.upper() == MANIFEST_NAME


def _read_headers(text: str) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    current_header = ""
    current_value = ""
    for line in text.splitlines():
        if line.startswith(" "):
            if current_header:
                current_value += line[1:]
            continue
        if current_header:
            headers[current_header] = current_value
        idx = line.find(":")
        if idx != -1:
            current_header = line[:idx].strip()
            current_value = line[idx + 1:].strip()
        else:
            current_header = ""
            current_value = ""
    if current_header:
        headers[current_header] = current_value
    return headers


def parse_manifest(path: str) -> Optional[Bundle]:
    """Parse one manifest. Returns None when the file cannot be read."""
    try:
        with open(path, "r", encoding=settings.SOURCE_ENCODING, errors="replace") as fh:
            headers = _read_headers(fh.read())
    except OSError as e:
        logger.debug(f"Cannot read manifest {path}: {e}")
        record_fallback("unreadable", str(path))
        return None

    symbolic_name = headers.get("Bundle-SymbolicName", "").split(";")[0].strip()
    components = [p.strip() for p in headers.get("Service-Component", "").split(",") if p.strip()]
    return Bundle(
        symbolic_name=symbolic_name,
        name=headers.get("Bundle-Name", ""),
        version=headers.get("Bundle-Version", ""),
        service_components=components,
        manifest_path=str(path),
    )


def scan_manifests(paths: Iterable[str]) -> List[Bundle]:
    bundles = []
    for path in paths:
        bundle = parse_manifest(path)
        if bundle is None:
            continue
        if not bundle.symbolic_name:
            logger.debug(f"{path} has no Bundle-SymbolicName; not an OSGi bundle")
            continue
        bundles.append(bundle)
    if bundles:
        record_detector_hit("osgi_manifest", len(bundles))
    return bundles
