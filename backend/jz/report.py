"""
Markdown and Mermaid rendering of analysis results, execution flows and flow diffs.

Rendering is read-only over the models it receives.
"""
from typing import List, Optional, Sequence

from .models import (
    AnalysisResult, AppType, DependencyGraph, Diagnostic, ExecutionFlow, FlowDiff,
    FlowStatus, FlowStep, FlowStepKind, RESTCall, ResolutionScope, Service, StepDiff,
    StepDiffKind, SystemGraph,
)

_STEP_GROUPS = {
    FlowStepKind.ENTRY: "Entry",
    FlowStepKind.CONDITION: "Guard Conditions",
    FlowStepKind.OUTBOUND: "Outbound Calls",
    FlowStepKind.CALL: "Method Execution",
    FlowStepKind.RETURN: "Early Exit / Return",
    FlowStepKind.UNEXPANDED: "Scope Limits",
}


# ---- System report ----
def _diagnostics(diag: Diagnostic) -> List[str]:
    if diag.has_osgi:
        return []
    lines = ["## Diagnostics", ""]
    if diag.has_liberty_war:
        lines += [
            "- Liberty WAR service detected.",
            "- OSGi bundles not found; modeled as a single Liberty service.",
        ]
    elif diag.has_liberty:
        if not diag.any_manifest_found:
            lines.append("- No MANIFEST.MF files found.")
        lines += [
            "- OSGi-based analysis skipped.",
            "- server.xml was detected, but no web application or WEB-INF/web.xml was found.",
        ]
    else:
        lines += [
            "- No supported runtime model detected.",
            "- Supported models: OSGi bundles (META-INF/MANIFEST.MF) and Liberty web applications (server.xml).",
            "- Analysis skipped.",
        ]
    lines.append("")
    return lines


def _call_line(call: RESTCall) -> str:
    verb = call.http_method or "?"
    target = call.target_path or "<dynamic>"
    line = f"- {call.from_handler}: {verb} {target} [{call.resolution_scope.value}, confidence: {call.confidence.value}]"
    if call.target_resource:
        line += f" -> {call.target_service}/{call.target_resource}"
    elif call.resolution_evidence:
        line += f" ({call.resolution_evidence})"
    return line


def _service_section(svc: Service) -> List[str]:
    lines = [
        f"## {svc.name}",
        "",
        f"- Root Path: {svc.root_path}",
        f"- REST Entry Points: {len(svc.entry_points)}",
        f"- DS Components: {len(svc.components)}",
    ]
    if svc.server_name:
        lines.append(f"- Liberty Server: {svc.server_name}")
    if svc.application is not None:
        lines.append(f"- Application: {svc.application.id or svc.application.location}")
    if svc.features:
        lines.append("- Enabled Features:")
        lines += [f"  - {f}" for f in svc.features]
    lines.append("")

    if svc.rest_resources:
        lines += ["### REST Resources", ""]
        for res in svc.rest_resources:
            lines.append(f"#### {res.name}")
            if res.package:
                lines.append(f"Package: {res.package}")
            if res.base_path:
                lines.append(f"Base path: {res.base_path}")
            if res.auth_annotations:
                lines.append(f"Auth: {', '.join(res.auth_annotations)}")
            if res.consumes:
                lines.append(f"Consumes: {', '.join(res.consumes)}")
            if res.produces:
                lines.append(f"Produces: {', '.join(res.produces)}")
            if res.path_params:
                lines.append(f"Path Params: {', '.join(res.path_params)}")
            lines.append("")
            lines += [f"- {m.http_method:<7} {m.full_path}" for m in res.methods]
            if res.http_methods:
                lines += ["", "Methods summary:"]
                lines += [f"- {verb}: {res.http_methods[verb]}" for verb in sorted(res.http_methods)]
            if res.inbound_calls:
                lines += ["", "Called by:"]
                lines += [f"- {c.from_service}/{c.from_handler}" for c in res.inbound_calls]
            lines.append("")

    if svc.rest_calls:
        lines += ["### Outbound REST Calls", ""]
        lines += [_call_line(c) for c in svc.rest_calls]
        lines.append("")

    if svc.boundaries:
        lines += ["### Boundaries", ""]
        lines += [f"- [{b.boundary_type.value}] {b.identifier}: {b.evidence}" for b in svc.boundaries]
        lines.append("")
    return lines


def render_system_markdown(result: AnalysisResult) -> str:
    services = result.services
    graph = result.system_graph
    lines = [
        "# System Overview",
        "",
        f"- Total number of services: {len(services)}",
        f"- Total number of system-level dependencies: {len(graph.dependencies)}",
        "",
    ]
    lines += _diagnostics(result.diagnostic)

    lines += ["# Services", ""]
    for svc in services:
        lines += _service_section(svc)

    lines += ["# REST Entry Points", ""]
    for svc in services:
        if svc.entry_points:
            lines += [f"## {svc.name}", ""]
            lines += [f"- {ep.method} {ep.path} ({ep.handler})" for ep in svc.entry_points]
            lines.append("")

    lines += ["# Internal Component Dependencies", ""]
    for svc in services:
        lines += [f"## {svc.name}", ""]
        if not svc.internal_graph.edges:
            lines += ["No internal component dependencies.", ""]
            continue
        lines += [f"- {e.from_component} -> {e.to_component} ({e.interface})" for e in svc.internal_graph.edges]
        lines.append("")

    lines += ["# System-Level Dependencies", ""]
    if not graph.dependencies:
        lines.append("No system-level dependencies.")
    else:
        lines += [f"- {d.from_service} -> {d.to_service} ({d.interface})" for d in graph.dependencies]
    return "\n".join(lines) + "\n"


# ---- Flow report ----
def _has_early_return(steps: Sequence[FlowStep]) -> bool:
    return any(s.kind == FlowStepKind.RETURN for s in steps[:-1])


def _yes(flag: bool) -> str:
    return "Yes" if flag else "No"


def _step_lines(step: FlowStep) -> List[str]:
    description = step.description
    if step.kind == FlowStepKind.CONDITION:
        description = f"**Guard:** {description}"
    lines = [f"{step.index}. **{step.kind.value.upper()}**: {description}"]
    if step.to_method:
        target = f"   - **Target:** `{step.to_method}`"
        if step.resolution_scope is not None:
            target += f" ({step.resolution_scope.value})"
        lines.append(target)
    lines.append(f"   - **Evidence:** `{step.evidence}` [confidence: {step.confidence.value}]")
    if step.kind == FlowStepKind.OUTBOUND and step.resolution_scope == ResolutionScope.UNRESOLVED:
        lines.append("   - *Note: this outbound call could not be resolved to a known resource.*")
    return lines


def render_flow_markdown(flows: Sequence[ExecutionFlow], resource_name: str,
                         path_filter: Optional[str] = None) -> str:
    lines = [
        f"# Execution Flow: {resource_name}",
        "",
        "> **Analysis Mode:** AST-lite (Conservative)",
        "> **Scope:** Single Resource Targeted Extraction",
    ]
    if path_filter:
        lines.append(f"> **Filter:** Path contains '{path_filter}'")
    lines.append("")

    lines += [
        "## Comparison Summary",
        "",
        "| HTTP Method + Path | Has Guards | Early Return | Outbound Calls |",
        "| :--- | :---: | :---: | :---: |",
    ]
    for f in flows:
        kinds = {s.kind for s in f.steps}
        lines.append(
            f"| `{f.entry_point}` | {_yes(FlowStepKind.CONDITION in kinds)} "
            f"| {_yes(_has_early_return(f.steps))} | {_yes(FlowStepKind.OUTBOUND in kinds)} |"
        )
    lines.append("")

    if not any(s.kind == FlowStepKind.OUTBOUND for f in flows for s in f.steps):
        lines += ["> **Note:** No outbound REST calls detected in any analyzed handlers for this resource.", ""]

    lines += ["## Summary", f"Extracted {len(flows)} flow(s) for resource `{resource_name}`.", ""]

    for f in flows:
        lines += [f"## Flow: {f.entry_point}", ""]
        if not f.steps:
            lines += ["_No steps detected (empty handler or failed to parse)._", ""]
            continue

        group = ""
        for step in f.steps:
            new_group = _STEP_GROUPS[step.kind]
            if new_group != group:
                lines += [f"### {new_group}", ""]
                group = new_group
            lines += _step_lines(step)
            lines.append("")

        if not any(s.kind == FlowStepKind.OUTBOUND for s in f.steps):
            lines += ["_No outbound REST calls detected in this handler._", ""]

        if f.steps[-1].kind == FlowStepKind.RETURN:
            lines.append("> **End Note:** Flow completed with a detected return statement.")
        else:
            lines.append(
                "> **End Note:** Flow may continue into helper services, injected components, or external "
                "layers not expanded in this view (reached end of analyzed handler without explicit return)."
            )
        lines.append("")

    lines += ["## Observations", "", "### Gating & Guardrails"]
    guards = [
        f"- Flow `{f.entry_point}` is gated by: `{s.description}`"
        for f in flows for s in f.steps if s.kind == FlowStepKind.CONDITION
    ]
    lines += guards or ["- No explicit gating conditions detected."]
    lines += ["", "### Early Exits"]
    exits = [
        f"- Flow `{f.entry_point}` has an early exit: `{s.description}`"
        for f in flows for s in f.steps[:-1] if s.kind == FlowStepKind.RETURN
    ]
    lines += exits or ["- No early exits detected."]
    lines += [
        "",
        "## Limitations (AST-lite)",
        "- Logic is extracted via line-based lexical analysis.",
        "- Data propagation across variables or loops is not tracked.",
        "- Complex boolean expressions may be truncated.",
        "- Only same-file internal methods are expanded.",
    ]
    return "\n".join(lines) + "\n"


# ---- Flow diff report ----
def _touches(sd: StepDiff, kinds: Sequence[FlowStepKind]) -> bool:
    return any(s is not None and s.kind in kinds for s in (sd.before, sd.after))


def _diff_section(title: str, step_diffs: Sequence[StepDiff], *kinds: FlowStepKind) -> List[str]:
    relevant = [sd for sd in step_diffs if sd.kind != StepDiffKind.UNCHANGED and _touches(sd, kinds)]
    if not relevant:
        return []
    lines = [f"### {title}"]
    for sd in relevant:
        if sd.kind == StepDiffKind.ADDED:
            lines.append(f"+ Added {sd.after.kind.value}: {sd.after.description}")
        elif sd.kind == StepDiffKind.REMOVED:
            lines.append(f"- Removed {sd.before.kind.value}: {sd.before.description}")
        elif sd.kind == StepDiffKind.MODIFIED:
            before, after = sd.before, sd.after
            lines += [
                f"~ Modified {after.kind.value}:",
                f"  - PREV: {before.description}",
                f"  - NEXT: {after.description}",
            ]
            if before.to_method != after.to_method:
                lines.append(f"  - Target changed: `{before.to_method}` -> `{after.to_method}`")
            if before.resolution_scope != after.resolution_scope:
                prev = before.resolution_scope.value if before.resolution_scope else "none"
                nxt = after.resolution_scope.value if after.resolution_scope else "none"
                lines.append(f"  - Resolution changed: {prev} -> {nxt}")
    lines.append("")
    return lines


def render_flow_diff_markdown(diffs: Sequence[FlowDiff], resource_name: str) -> str:
    lines = [
        f"# Flow Diff: {resource_name}",
        "",
        "> **Analysis Mode:** Structural Execution-Flow Diff",
        "> **Comparison:** Ordered Step-by-Step",
        "",
    ]
    for d in diffs:
        lines += [f"## Flow: {d.entry_point}", f"Status: **{d.status.value}**", ""]
        if d.status == FlowStatus.UNCHANGED:
            lines += ["No structural differences detected between flows.", ""]
            continue
        lines += _diff_section("Guards", d.step_diffs, FlowStepKind.CONDITION)
        lines += _diff_section("Outbound Calls", d.step_diffs, FlowStepKind.OUTBOUND)
        lines += _diff_section("Termination", d.step_diffs, FlowStepKind.RETURN, FlowStepKind.UNEXPANDED)
        lines += _diff_section("Internal Calls", d.step_diffs, FlowStepKind.CALL)
    return "\n".join(lines) + "\n"


# ---- Mermaid diagrams ----
_MERMAID_ID = str.maketrans({".": "_", "-": "_", "/": "_", " ": "_", "{": None, "}": None, "$": None})

_FLOW_SHAPES = {
    FlowStepKind.CONDITION: ("{{", "}}"),
    FlowStepKind.CALL: ("[", "]"),
    FlowStepKind.OUTBOUND: ("[", "]"),
    FlowStepKind.RETURN: ("((", "))"),
}

_SCOPE_ARROWS = {
    ResolutionScope.SAME_SERVICE: "-->",
    ResolutionScope.CROSS_SERVICE: "==>",
}


def mermaid_id(name: str) -> str:
    return name.translate(_MERMAID_ID)


def _mermaid_text(text: str) -> str:
    return text.replace('"', "#quot;")


def _system_graph_mermaid(services: Sequence[Service], graph: SystemGraph) -> List[str]:
    lines = ["graph TD"]
    lines += [
        f"\t{mermaid_id(d.from_service)} -->|{d.interface}| {mermaid_id(d.to_service)}"
        for d in graph.dependencies
    ]
    wars = {
        s.name for s in services
        if s.application is not None and s.application.type == AppType.WEB_APPLICATION
    }
    for name in graph.services:
        label = f"{name} (WAR)" if name in wars else name
        lines.append(f'\t{mermaid_id(name)}["{_mermaid_text(label)}"]')
    return lines


def _component_graph_mermaid(graph: DependencyGraph) -> List[str]:
    lines = ["graph TD"]
    lines += [
        f"\t{mermaid_id(e.from_component)} -->|{e.interface}| {mermaid_id(e.to_component)}"
        for e in graph.edges
    ]
    # isolated components still get a node
    lines += [f'\t{mermaid_id(n.name)}["{_mermaid_text(n.name)}"]' for n in graph.nodes]
    return lines


def render_system_mermaid(result: AnalysisResult) -> str:
    """System dependency diagram followed by one component diagram per service."""
    blocks = [_system_graph_mermaid(result.services, result.system_graph)]
    blocks += [_component_graph_mermaid(svc.internal_graph) for svc in result.services]
    return "\n".join("\n".join(block) + "\n" for block in blocks)


def _flow_arrow(step: FlowStep) -> str:
    if step.kind == FlowStepKind.OUTBOUND:
        return _SCOPE_ARROWS.get(step.resolution_scope, "-.->")
    if step.kind == FlowStepKind.CONDITION:
        return "-.->"
    return "-->"


def _guard_chain_end(steps: Sequence[FlowStep], start: int) -> int:
    end = start
    # a chain never absorbs the final return
    while (end + 2 < len(steps) and steps[end].kind == FlowStepKind.CONDITION
           and steps[end + 1].kind == FlowStepKind.RETURN):
        end += 2
    return end


def _flow_nodes(steps: Sequence[FlowStep], compact: bool):
    """(kind, label, edge label, arrow) for each diagram node.

    With ``compact`` a run of two or more guard/early-return pairs becomes one
    guard-chain node. The steps themselves are left untouched.
    """
    nodes = []
    i = 0
    while i < len(steps):
        end = _guard_chain_end(steps, i) if compact else i
        pairs = (end - i) // 2
        if pairs >= 2:
            label = "<br/>".join(
                f"{steps[k].description} => {steps[k + 1].description}" for k in range(i, end, 2)
            )
            nodes.append((FlowStepKind.CONDITION, label,
                          f"GUARD CHAIN x{pairs} [{steps[i].confidence.value}]", "-.->"))
            i = end
            continue
        step = steps[i]
        nodes.append((step.kind, step.description,
                      f"{step.kind.value.upper()} [{step.confidence.value}]", _flow_arrow(step)))
        i += 1
    return nodes


def render_flow_mermaid(flows: Sequence[ExecutionFlow], resource_name: str, compact: bool = False) -> str:
    lines = ["graph TD", f"\t%% Execution flows: {resource_name}"]
    for i, f in enumerate(flows):
        lines.append(f'\tsubgraph Flow_{i} ["{_mermaid_text(f.entry_point)}"]')
        last = None
        for j, (kind, label, edge, arrow) in enumerate(_flow_nodes(f.steps, compact)):
            node = f"F{i}_S{j}"
            left, right = _FLOW_SHAPES.get(kind, ("(", ")"))
            lines.append(f'\t\t{node}{left}"{_mermaid_text(label)}"{right}')
            if last is not None:
                lines.append(f'\t\t{last} {arrow}|"{edge}"| {node}')
            last = node
        lines.append("\tend")

    lines += [
        "",
        "\t%% Legend",
        "\tsubgraph Legend",
        "\t\tl1[Same-service Call] --> l2[Next Step]",
        "\t\tl3[Cross-service Call] ==> l4[Next Step]",
        "\t\tl5[Conditional/Unresolved] -.-> l6[Next Step]",
        "\tend",
    ]
    return "\n".join(lines) + "\n"
