"""
Links detected outbound calls to known REST resources.

Resolution is unique-match-only: a call gets a target when exactly one
resource answers its (verb, path) pair, first within its own service and then,
for calls with a literal path and verb, across all services. Any ambiguity is
recorded as unresolved instead of being guessed.
"""
import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from .config import settings
from .models import Confidence, RESTCall, ResolutionScope, Service
from .observability import get_metrics_collector

logger = logging.getLogger(__name__)

IndexKey = Tuple[str, str]
Target = Tuple[str, str]
PathIndex = Dict[IndexKey, List[Target]]

_CROSS_SERVICE_CONFIDENCE = (Confidence.HIGH, Confidence.MEDIUM)


def lookup_key(call: RESTCall) -> Optional[IndexKey]:
    # Matched as written: a "/tenants/" fragment never matches "/tenants".
    if not call.http_method or not call.target_path:
        return None
    return call.http_method.upper(), call.target_path


def build_path_index(services: Sequence[Service]) -> PathIndex:
    """(verb, full path) -> distinct (service, resource) pairs answering it."""
    index: PathIndex = defaultdict(list)
    for svc in services:
        for res in svc.rest_resources:
            for m in res.methods:
                target = (svc.name, res.name)
                key = (m.http_method.upper(), m.full_path)
                if target not in index[key]:
                    index[key].append(target)
    return dict(index)


def resolve_call(call: RESTCall, same_index: PathIndex, global_index: PathIndex,
                 allow_cross_service: bool = True) -> RESTCall:
    """Return a copy of ``call`` with its resolution filled in."""
    key = lookup_key(call)
    if key is None:
        reason = "no literal target path" if not call.target_path else "no HTTP verb detected"
        return call.model_copy(update={
            "resolution_scope": ResolutionScope.UNRESOLVED,
            "resolution_evidence": reason,
        })

    same = same_index.get(key, [])
    if len(same) == 1:
        service_name, resource_name = same[0]
        return call.model_copy(update={
            "target_service": service_name,
            "target_resource": resource_name,
            "resolution_scope": ResolutionScope.SAME_SERVICE,
            "resolution_evidence": "exact path+method match (internal)",
        })
    evidence = f"ambiguous same-service match ({len(same)} candidates)" if same else "no matching resource"

    if allow_cross_service and call.confidence in _CROSS_SERVICE_CONFIDENCE:
        candidates = global_index.get(key, [])
        if len(candidates) == 1:
            service_name, resource_name = candidates[0]
            return call.model_copy(update={
                "target_service": service_name,
                "target_resource": resource_name,
                "resolution_scope": ResolutionScope.CROSS_SERVICE,
                "resolution_evidence": "exact path+method match (global)",
            })
        if len(candidates) > 1:
            evidence = f"ambiguous global match ({len(candidates)} candidates)"

    return call.model_copy(update={
        "resolution_scope": ResolutionScope.UNRESOLVED,
        "resolution_evidence": evidence,
    })


def _call_order(call: RESTCall):
    return call.from_handler, call.target_path


def link_calls_to_resources(services: Sequence[Service]) -> None:
    """Resolve every service's calls and fill resource inbound/outbound lists."""
    metrics = get_metrics_collector()
    global_index = build_path_index(services)

    owners = defaultdict(list)
    for svc in services:
        for res in svc.rest_resources:
            res.outbound_calls = []
            res.inbound_calls = []
            owners[(svc.name, res.name)].append(res)

    for svc in services:
        same_index = build_path_index([svc])
        svc.rest_calls = [
            resolve_call(c, same_index, global_index, settings.CROSS_SERVICE_LINKING)
            for c in svc.rest_calls
        ]
        for call in svc.rest_calls:
            metrics.record_resolution(call.resolution_scope.value)
            for res in owners[(svc.name, call.from_resource)]:
                res.outbound_calls.append(call.model_copy())
            if call.target_service and call.target_resource:
                for res in owners[(call.target_service, call.target_resource)]:
                    res.inbound_calls.append(call.model_copy())
        svc.rest_calls.sort(key=_call_order)

    for svc in services:
        for res in svc.rest_resources:
            res.outbound_calls.sort(key=_call_order)
            res.inbound_calls.sort(key=_call_order)

    resolved = sum(1 for s in services for c in s.rest_calls if c.resolution_scope != ResolutionScope.UNRESOLVED)
    total = sum(len(s.rest_calls) for s in services)
    logger.info(f"Linked {resolved}/{total} outbound calls")
