"""
Execution flow tracer.

Walks a REST handler body line by line and narrates it as flat steps:
conditions, returns, outbound REST calls and same-file internal calls. Internal
calls are expanded in place up to ``max_depth``; one visited set per flow stops
recursion on self- and mutually-recursive methods.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set

from .config import settings
from .errors import ResourceNotFoundError
from .models import (
    Confidence, ExecutionFlow, FlowStep, FlowStepKind, RESTCall, RESTResource,
    ResolutionScope, Service,
)
from .observability import get_metrics_collector
from .scanners.java_text import (
    called_name, is_comment, iter_method_body, method_exists, read_source_lines,
)
from .scanners.outbound import detect_call_shape

logger = logging.getLogger(__name__)

_IF_RE = re.compile(r"^(?:\}\s*)?(?:else\s+)?if\s*\(")
_ELSE_RE = re.compile(r"^(?:\}\s*)?else\b")
_LOOP_PREFIXES = ("if", "for", "while")


@dataclass
class _FlowContext:
    source_file: str
    class_name: str
    lines: List[str]
    calls: Sequence[RESTCall]
    max_depth: int
    visited: Set[str] = field(default_factory=set)


def extract_flows(services: Sequence[Service], resource_name: str,
                  verb_filter: Optional[str] = None, path_filter: Optional[str] = None,
                  max_depth: Optional[int] = None) -> List[ExecutionFlow]:
    """Trace every (verb, path) handler of ``resource_name``.

    Raises ResourceNotFoundError when no service declares the resource; an
    empty list only means the filters matched nothing.
    """
    if max_depth is None:
        max_depth = settings.FLOW_MAX_DEPTH

    found = _find_resource(services, resource_name)
    if found is None:
        raise ResourceNotFoundError(resource_name)
    svc, res = found

    flows: List[ExecutionFlow] = []
    for m in res.methods:
        if verb_filter and m.http_method.upper() != verb_filter.upper():
            continue
        if path_filter and path_filter != "*" and path_filter not in m.full_path:
            continue
        if "." not in m.handler:
            continue
        method_name = m.method_name

        flow = ExecutionFlow(resource_name=res.name, entry_point=f"{m.http_method} {m.full_path}")
        lines = read_source_lines(m.source_file)
        if lines is not None:
            ctx = _FlowContext(
                source_file=m.source_file,
                class_name=res.name,
                lines=lines,
                calls=svc.rest_calls,
                max_depth=max_depth,
            )
            flow.steps = [FlowStep(
                kind=FlowStepKind.ENTRY,
                description=f"Enter: {method_name}",
                from_method=f"{res.name}.{method_name}",
                confidence=Confidence.HIGH,
                evidence=f"{m.source_file} (start)",
            )]
            flow.steps.extend(_scan_method(ctx, method_name, depth=0))

        for i, step in enumerate(flow.steps, start=1):
            step.index = i
        flows.append(flow)

    get_metrics_collector().increment("flows_extracted", len(flows))
    logger.info(f"Extracted {len(flows)} flows for {resource_name}")
    return flows


def _find_resource(services: Sequence[Service], name: str):
    for svc in services:
        res: Optional[RESTResource] = svc.find_resource(name)
        if res is not None:
            return svc, res
    return None


def _condition(trimmed: str) -> str:
    start = trimmed.find("(")
    end = trimmed.rfind(")")
    if start != -1 and end > start:
        return trimmed[start + 1:end]
    return "unknown condition"


def _return_expr(trimmed: str) -> str:
    expr = trimmed[len("return"):].strip()
    return expr[:-1] if expr.endswith(";") else expr


def _outbound_step(ctx: _FlowContext, handler: str, trimmed: str, evidence: str) -> Optional[FlowStep]:
    shape = detect_call_shape(trimmed)
    if shape is None:
        return None

    description = "Outbound REST call"
    if shape.http_method and shape.target_path:
        description = f"Call: {shape.http_method} {shape.target_path}"

    scope = ResolutionScope.UNRESOLVED
    target = ""
    for call in ctx.calls:
        if (call.from_handler == handler and call.http_method == shape.http_method
                and call.target_path == shape.target_path):
            scope = call.resolution_scope
            if call.target_resource:
                target = f"{call.target_service} -> {call.target_resource}"
            break

    return FlowStep(
        kind=FlowStepKind.OUTBOUND,
        description=description,
        from_method=handler,
        to_method=target,
        confidence=shape.confidence,
        evidence=evidence,
        resolution_scope=scope,
    )


def _is_call_candidate(trimmed: str) -> bool:
    return (
        "(" in trimmed
        and "new " not in trimmed
        and "return " not in trimmed
        and not trimmed.startswith(_LOOP_PREFIXES)
    )


def _scan_method(ctx: _FlowContext, method_name: str, depth: int) -> List[FlowStep]:
    handler = f"{ctx.class_name}.{method_name}"
    ctx.visited.add(handler)

    steps: List[FlowStep] = []
    for lineno, raw in iter_method_body(ctx.lines, method_name):
        trimmed = raw.strip()
        if is_comment(trimmed):
            continue
        evidence = f"{ctx.source_file}:{lineno}"

        if _IF_RE.match(trimmed):
            steps.append(FlowStep(
                kind=FlowStepKind.CONDITION,
                description=f"Check: {_condition(trimmed)}",
                from_method=handler,
                confidence=Confidence.MEDIUM,
                evidence=evidence,
            ))
        elif _ELSE_RE.match(trimmed):
            steps.append(FlowStep(
                kind=FlowStepKind.CONDITION,
                description="Otherwise",
                from_method=handler,
                confidence=Confidence.MEDIUM,
                evidence=evidence,
            ))

        if trimmed == "return;" or trimmed.startswith("return ") or trimmed.startswith("return("):
            steps.append(FlowStep(
                kind=FlowStepKind.RETURN,
                description=f"Return: {_return_expr(trimmed)}",
                from_method=handler,
                confidence=Confidence.HIGH,
                evidence=evidence,
            ))

        outbound = _outbound_step(ctx, handler, trimmed, evidence)
        if outbound is not None:
            steps.append(outbound)
            continue

        if not _is_call_candidate(trimmed):
            continue
        callee = called_name(trimmed)
        if not callee or not method_exists(ctx.lines, callee):
            continue

        target = f"{ctx.class_name}.{callee}"
        if depth < ctx.max_depth and target not in ctx.visited:
            steps.append(FlowStep(
                kind=FlowStepKind.CALL,
                description=f"Call internal: {callee}",
                from_method=handler,
                to_method=target,
                confidence=Confidence.MEDIUM,
                evidence=evidence,
            ))
            steps.extend(_scan_method(ctx, callee, depth + 1))
        else:
            reason = "already visited / potential cycle" if target in ctx.visited else "depth limit"
            steps.append(FlowStep(
                kind=FlowStepKind.UNEXPANDED,
                description=f"Call internal: {callee} (unexpanded - {reason})",
                from_method=handler,
                to_method=target,
                confidence=Confidence.HIGH,
                evidence=evidence,
            ))
    return steps
