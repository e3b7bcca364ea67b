"""
OSGi Declarative Services descriptor scanner.

Element names are matched by local name, so ``scr:component`` documents and
documents using a default namespace read the same way.
"""
import logging
import xml.etree.ElementTree as ET
from typing import Iterable, List

from ..models import DSComponent
from ..observability import get_metrics_collector, record_fallback, record_detector_hit

logger = logging.getLogger(__name__)


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _unique(values: Iterable[str]) -> List[str]:
    out: List[str] = []
    for v in values:
        if v and v not in out:
            out.append(v)
    return out


def _to_component(elem: ET.Element, path: str) -> DSComponent:
    impl_class = ""
    provided = []
    referenced = []
    for child in elem:
        tag = _local(child.tag)
        if tag == "implementation":
            impl_class = child.get("class", "")
        elif tag == "service":
            provided.extend(p.get("interface", "") for p in child if _local(p.tag) == "provide")
        elif tag == "reference":
            referenced.append(child.get("interface", ""))

    return DSComponent(
        # DS names a component after its implementation class by default
        name=elem.get("name") or impl_class,
        implementation_class=impl_class,
        immediate=elem.get("immediate", "").strip().lower() in ("true", "1"),
        provided_interfaces=_unique(provided),
        referenced_interfaces=_unique(referenced),
        source_xml=str(path),
    )


def parse_ds_file(path: str) -> List[DSComponent]:
    """Parse one descriptor; a wrapper element may hold several components."""
    try:
        root = ET.parse(path).getroot()
    except (OSError, ET.ParseError) as e:
        logger.debug(f"Cannot parse DS descriptor {path}: {e}")
        record_fallback("xml_parse_failed", str(path))
        return []

    if _local(root.tag) == "component":
        elements = [root]
    else:
        elements = [e for e in root.iter() if _local(e.tag) == "component"]
    return [_to_component(e, path) for e in elements]


def scan_ds_components(paths: Iterable[str]) -> List[DSComponent]:
    components: List[DSComponent] = []
    for path in paths:
        components.extend(parse_ds_file(path))
    if components:
        record_detector_hit("ds_component", len(components))
        get_metrics_collector().increment("components_parsed", len(components))
    return components
