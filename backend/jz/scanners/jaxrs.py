"""
JAX-RS scanners.

``scan_entry_points`` is a single forward pass per source file and is the only
producer of EntryPoint records. ``scan_resource_metadata`` is a second,
independent pass run once per grouped resource to collect the class-level
path, auth markers and media types.

Limitations (AST-lite):
- Line-based: annotations and declarations must sit on one line each.
- No constant evaluation: ``@Path(BASE)`` or ``MediaType.APPLICATION_JSON``
  contribute nothing.
- Method bodies are never inspected here.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..models import EntryPoint
from ..observability import get_metrics_collector, record_detector_hit
from ..paths import build_entry_path, normalize_path
from .java_text import (
    HTTP_VERBS,
    declared_class_name,
    declared_method_name,
    first_string_literal,
    is_comment,
    read_source_lines,
    split_annotations,
    string_literals,
)

logger = logging.getLogger(__name__)

AUTH_ANNOTATIONS = ("RolesAllowed", "PermitAll", "DenyAll", "Authenticated", "RequiresRole", "Secured")


@dataclass
class _EntryScanState:
    pending_class_path: str = ""
    class_path: str = ""
    class_name: str = ""
    method_path: str = ""
    verb: Optional[str] = None


@dataclass
class ResourceMetadata:
    base_path: str = ""
    auth: List[str] = field(default_factory=list)
    consumes: List[str] = field(default_factory=list)
    produces: List[str] = field(default_factory=list)


def scan_entry_points(source_file: str) -> List[EntryPoint]:
    lines = read_source_lines(source_file)
    if lines is None:
        get_metrics_collector().record_file_scanned(skipped=True)
        return []
    get_metrics_collector().record_file_scanned()

    state = _EntryScanState()
    entry_points: List[EntryPoint] = []

    for raw in lines:
        line = raw.strip()
        if not line or is_comment(line):
            continue

        if line.startswith("@"):
            annotations, line = split_annotations(line)
            for name, args in annotations:
                if name == "Path":
                    if state.class_name:
                        state.method_path = first_string_literal(args)
                    else:
                        state.pending_class_path = first_string_literal(args)
                elif name in HTTP_VERBS:
                    state.verb = name
            if not line:
                continue

        class_name = declared_class_name(line)
        if class_name:
            state.class_name = class_name
            if state.pending_class_path:
                state.class_path = state.pending_class_path
                state.pending_class_path = ""
            continue

        if state.class_name and "(" in line:
            method_name = declared_method_name(line)
            if method_name and not state.verb:
                # sub-resource locator or plain method: its @Path is not ours
                state.method_path = ""
            elif method_name:
                entry_points.append(EntryPoint(
                    method=state.verb,
                    path=build_entry_path(state.class_path, state.method_path),
                    handler=f"{state.class_name}.{method_name}",
                    source_file=str(source_file),
                    resource=state.class_name,
                ))
                state.method_path = ""
                state.verb = None

    if entry_points:
        record_detector_hit("jaxrs_entry_point", len(entry_points))
        get_metrics_collector().increment("entry_points_detected", len(entry_points))
    return entry_points


def scan_resource_metadata(source_file: str, class_name: str) -> ResourceMetadata:
    lines = read_source_lines(source_file)
    if lines is None:
        return ResourceMetadata()

    meta = ResourceMetadata()
    latest_path = ""
    class_found = False
    auth = set()
    consumes = set()
    produces = set()

    for raw in lines:
        line = raw.strip()
        if not line or is_comment(line):
            continue

        if line.startswith("@"):
            annotations, rest = split_annotations(line)
            for name, args in annotations:
                if name == "Path" and not class_found:
                    latest_path = first_string_literal(args)
                elif name in AUTH_ANNOTATIONS:
                    auth.add("@" + name)
                elif name == "Consumes":
                    consumes.update(mt.lower() for mt in string_literals(args) if mt)
                elif name == "Produces":
                    produces.update(mt.lower() for mt in string_literals(args) if mt)
            line = rest

        if not class_found and line and declared_class_name(line) == class_name:
            meta.base_path = normalize_path(latest_path)
            class_found = True

    meta.auth = sorted(auth)
    meta.consumes = sorted(consumes)
    meta.produces = sorted(produces)
    return meta
