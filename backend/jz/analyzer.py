"""
Service assembly.

Turns a SourceInventory into the architectural model: OSGi bundles (or one
synthetic Liberty web application) become services that own their entry
points, DS components, grouped REST resources, outbound calls and boundaries.
Calls are linked and the system graph is built once every service exists.
"""
from __future__ import annotations
import glob
import logging
import os
import time
from collections import Counter, OrderedDict
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .call_resolver import link_calls_to_resources
from .discovery import SourceInventory, discover_sources
from .errors import ServiceNotFoundError
from .graph_builder import build_internal_graph, build_system_graph
from .models import (
    AnalysisResult, AppType, BoundaryType, Bundle, Diagnostic, EntryPoint,
    LibertyApp, LibertyServer, RESTCall, RESTMethod, RESTResource, Service,
    ServiceBoundary, SystemGraph,
)
from .observability import record_phase_timing
from .paths import extract_path_params, join_paths, normalize_path, strip_base_path
from .scanners.ds_component import scan_ds_components
from .scanners.jaxrs import scan_entry_points, scan_resource_metadata
from .scanners.java_text import read_package_name, read_source_lines
from .scanners.liberty import find_first_server
from .scanners.osgi_manifest import scan_manifests
from .scanners.outbound import scan_outbound_calls

logger = logging.getLogger(__name__)


def analyze(root: str | Path) -> AnalysisResult:
    """Discover sources under ``root`` and build the model.

    Raises RootNotFoundError when ``root`` is not a directory.
    """
    return build_model(discover_sources(root))


def build_model(inventory: SourceInventory) -> AnalysisResult:
    started = time.time()
    diag = Diagnostic(any_manifest_found=bool(inventory.manifests))

    bundles = scan_manifests(inventory.manifests)
    diag.has_osgi = bool(bundles)

    entry_points: List[EntryPoint] = []
    for java_file in inventory.java_files:
        entry_points.extend(scan_entry_points(java_file))

    server = find_first_server(inventory.server_xmls)
    diag.has_liberty = server is not None

    services = _bundle_services(bundles, entry_points, server)

    if not services and server is not None:
        war = _web_application_service(inventory, entry_points, server)
        if war is not None:
            diag.has_liberty_war = True
            services.append(war)

    link_calls_to_resources(services)
    system_graph = build_system_graph(services)

    record_phase_timing("analyze", time.time() - started)
    logger.info(
        f"Analysis complete: {len(services)} services, "
        f"{sum(len(s.rest_resources) for s in services)} resources, "
        f"{sum(len(s.rest_calls) for s in services)} outbound calls"
    )
    return AnalysisResult(services=services, system_graph=system_graph, diagnostic=diag)


def _service_root(bundle: Bundle) -> str:
    # <root>/META-INF/MANIFEST.MF
    return str(Path(bundle.manifest_path).parent.parent)


def _is_under(path: str, root: str) -> bool:
    p, r = Path(path), Path(root)
    return p == r or r in p.parents


def _assign_entry_points(roots: Sequence[str], entry_points: Sequence[EntryPoint]) -> Dict[str, List[EntryPoint]]:
    """Each entry point goes to the deepest service root containing it."""
    owned: Dict[str, List[EntryPoint]] = {r: [] for r in roots}
    for ep in entry_points:
        matches = [r for r in roots if _is_under(ep.source_file, r)]
        if matches:
            owned[max(matches, key=lambda r: len(Path(r).parts))].append(ep)
    return owned


def _component_paths(root: str, patterns: Sequence[str]) -> List[str]:
    paths: List[str] = []
    for pattern in patterns:
        for match in sorted(glob.glob(os.path.join(root, pattern))):
            if match not in paths:
                paths.append(match)
    return paths


def _bundle_services(bundles: Sequence[Bundle], entry_points: Sequence[EntryPoint],
                     server: Optional[LibertyServer]) -> List[Service]:
    roots = [_service_root(b) for b in bundles]
    owned = _assign_entry_points(roots, entry_points)

    services = []
    for bundle, root in zip(bundles, roots):
        components = scan_ds_components(_component_paths(root, bundle.service_components))
        svc = Service(
            name=bundle.symbolic_name,
            root_path=root,
            entry_points=list(owned[root]),
            components=components,
            internal_graph=build_internal_graph(components),
        )
        if server is not None:
            svc.server_name = server.name
            svc.features = list(server.enabled_features)
        svc.rest_resources = group_rest_resources(svc.entry_points)
        svc.rest_calls = collect_outbound_calls(svc)
        svc.boundaries = package_boundaries(svc)
        services.append(svc)
    return services


def _web_application_service(inventory: SourceInventory, entry_points: Sequence[EntryPoint],
                             server: LibertyServer) -> Optional[Service]:
    web_app: Optional[LibertyApp] = next(
        (a for a in server.deployed_apps if a.type == AppType.WEB_APPLICATION), None
    )
    if web_app is None and not inventory.web_xmls:
        return None

    name = web_app.id if web_app is not None and web_app.id else Path(inventory.root).name
    svc = Service(
        name=name,
        root_path=inventory.root,
        entry_points=list(entry_points),
        server_name=server.name,
        features=list(server.enabled_features),
        application=web_app,
    )
    svc.rest_resources = group_rest_resources(svc.entry_points)
    svc.rest_calls = collect_outbound_calls(svc)
    svc.boundaries = [ServiceBoundary(
        service_name=svc.name,
        boundary_type=BoundaryType.RESOURCE_GROUP,
        identifier="rest-api",
        evidence="Liberty WAR modeled as a single REST resource group",
    )]
    return svc


def group_rest_resources(entry_points: Sequence[EntryPoint]) -> List[RESTResource]:
    """Group entry points by resource class; one metadata re-scan per resource."""
    groups: Dict[str, List[EntryPoint]] = OrderedDict()
    for ep in entry_points:
        groups.setdefault(ep.resource, []).append(ep)

    resources = []
    for name in sorted(groups):
        eps = groups[name]
        source_file = eps[0].source_file
        meta = scan_resource_metadata(source_file, name)
        lines = read_source_lines(source_file) or []

        methods = []
        params: List[str] = []
        for ep in eps:
            sub_path = strip_base_path(ep.path, meta.base_path)
            full_path = join_paths(meta.base_path, sub_path)
            methods.append(RESTMethod(
                http_method=ep.method,
                sub_path=normalize_path(sub_path),
                full_path=full_path,
                handler=ep.handler,
                source_file=ep.source_file,
            ))
            params.extend(extract_path_params(full_path))

        resources.append(RESTResource(
            name=name,
            package=read_package_name(lines),
            source_file=source_file,
            base_path=meta.base_path,
            entry_points=list(eps),
            methods=methods,
            http_methods=dict(Counter(ep.method for ep in eps)),
            path_params=sorted(set(params)),
            auth_annotations=meta.auth,
            consumes=meta.consumes,
            produces=meta.produces,
        ))
    return resources


def collect_outbound_calls(svc: Service) -> List[RESTCall]:
    """Scan each REST handler body once; dedupe by (handler, verb, path)."""
    calls: List[RESTCall] = []
    seen = set()
    for res in svc.rest_resources:
        for m in res.methods:
            for call in scan_outbound_calls(m.source_file, m.method_name, svc.name, res.name):
                key = (call.from_handler, call.http_method, call.target_path)
                if key not in seen:
                    seen.add(key)
                    calls.append(call)
    return calls


def package_boundaries(svc: Service) -> List[ServiceBoundary]:
    counts = Counter(res.package for res in svc.rest_resources if res.package)
    return [
        ServiceBoundary(
            service_name=svc.name,
            boundary_type=BoundaryType.PACKAGE,
            identifier=pkg,
            evidence=f"{counts[pkg]} REST resource(s) declared in this package",
        )
        for pkg in sorted(counts)
    ]


def filter_by_service(result: AnalysisResult, service_name: Optional[str]) -> AnalysisResult:
    """Keep one service and the system dependencies touching it."""
    if not service_name:
        return result
    services = [s for s in result.services if s.name == service_name]
    if not services:
        raise ServiceNotFoundError(service_name)
    deps = [
        d for d in result.system_graph.dependencies
        if service_name in (d.from_service, d.to_service)
    ]
    return AnalysisResult(
        services=services,
        system_graph=SystemGraph(services=[service_name], dependencies=deps),
        diagnostic=result.diagnostic,
    )
