"""WebSphere Liberty server.xml scanner."""
import logging
import xml.etree.ElementTree as ET
from typing import Iterable, List, Optional

from ..models import AppType, LibertyApp, LibertyServer
from ..observability import record_fallback, record_detector_hit

logger = logging.getLogger(__name__)

SERVER_XML = "server.xml"


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def parse_liberty_server(path: str) -> Optional[LibertyServer]:
    """Parse a server.xml. Returns None when it cannot be read or parsed."""
    try:
        root = ET.parse(path).getroot()
    except (OSError, ET.ParseError) as e:
        logger.debug(f"Cannot parse {path}: {e}")
        record_fallback("xml_parse_failed", str(path))
        return None

    features: List[str] = []
    apps: List[LibertyApp] = []
    for child in root:
        tag = _local(child.tag)
        if tag == "featureManager":
            for feat in child:
                name = (feat.text or "").strip()
                if _local(feat.tag) == "feature" and name and name not in features:
                    features.append(name)
        elif tag == "application":
            app = LibertyApp(
                id=child.get("id", ""),
                location=child.get("location", ""),
                type=AppType.APPLICATION,
            )
            if app not in apps:
                apps.append(app)
        elif tag == "webApplication":
            app = LibertyApp(
                id=child.get("id", ""),
                location=child.get("location", ""),
                type=AppType.WEB_APPLICATION,
                context_root=child.get("contextRoot"),
            )
            if app not in apps:
                apps.append(app)

    record_detector_hit("liberty_server")
    return LibertyServer(
        name=root.get("name", ""),
        server_xml=str(path),
        enabled_features=features,
        deployed_apps=apps,
    )


def find_first_server(paths: Iterable[str]) -> Optional[LibertyServer]:
    """First descriptor that parses wins."""
    for path in paths:
        server = parse_liberty_server(path)
        if server is not None:
            return server
    return None
