"""
Outbound REST call scanner.

Limitations (AST-lite):
- Only the body of the first declaration of the method is scanned.
- Target URLs must be string literals on the call line; anything built from
  variables stays unknown and low-confidence.
- At most one call is recorded per line.
"""
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from ..models import Confidence, DetectionType, RESTCall
from ..observability import get_metrics_collector, record_detector_hit
from .java_text import is_comment, iter_method_body, outer_quoted, read_source_lines

logger = logging.getLogger(__name__)

CALL_SHAPES = ("get(", "post(", "put(", "delete(", "RESTClient", "WebTarget", "HttpURLConnection")
CALL_VERBS = ("GET", "POST", "PUT", "DELETE")

_VERB_RES = [(v, re.compile(rf"(?<![A-Za-z]){v}(?![A-Za-z])", re.IGNORECASE)) for v in CALL_VERBS]
_CONSTANT_ARG_RE = re.compile(r"\(\s*(?:[A-Za-z_][\w]*\.)?[A-Z][A-Z0-9]*(?:_[A-Z0-9]+)*\s*[,)+]")


@dataclass
class CallShape:
    http_method: Optional[str]
    target_path: str
    detection_type: DetectionType
    confidence: Confidence


def detect_call_shape(trimmed: str) -> Optional[CallShape]:
    """Classify a body line as an outbound call, or return None."""
    if not any(p in trimmed for p in CALL_SHAPES):
        return None

    http_method = next((v for v, rx in _VERB_RES if rx.search(trimmed)), None)

    target_path = ""
    candidate = outer_quoted(trimmed)
    if candidate.startswith(("/", "http")):
        target_path = candidate

    if target_path:
        detection = DetectionType.LITERAL
    elif _CONSTANT_ARG_RE.search(trimmed):
        detection = DetectionType.CONSTANT
    else:
        detection = DetectionType.UNKNOWN

    confidence = Confidence.HIGH if target_path and http_method else Confidence.LOW
    return CallShape(http_method, target_path, detection, confidence)


def scan_outbound_calls(source_file: str, method_name: str,
                        from_service: str, from_resource: str) -> List[RESTCall]:
    lines = read_source_lines(source_file)
    if lines is None:
        return []

    calls: List[RESTCall] = []
    for lineno, raw in iter_method_body(lines, method_name):
        trimmed = raw.strip()
        if is_comment(trimmed):
            continue
        shape = detect_call_shape(trimmed)
        if shape is None:
            continue
        calls.append(RESTCall(
            from_service=from_service,
            from_resource=from_resource,
            from_handler=f"{from_resource}.{method_name}",
            http_method=shape.http_method,
            target_path=shape.target_path,
            source_file=str(source_file),
            line=lineno,
            detection_type=shape.detection_type,
            confidence=shape.confidence,
        ))

    if calls:
        record_detector_hit("outbound_call", len(calls))
        get_metrics_collector().increment("outbound_calls_detected", len(calls))
    return calls
