from jz.call_resolver import build_path_index, link_calls_to_resources, resolve_call
from jz.config import settings
from jz.models import Confidence, RESTCall, RESTMethod, RESTResource, ResolutionScope, Service


def resource(name, verb, path):
    return RESTResource(
        name=name,
        source_file=f"{name}.java",
        methods=[RESTMethod(http_method=verb, sub_path=path, full_path=path,
                            handler=f"{name}.handle", source_file=f"{name}.java")],
    )


def call(service, res, path="/tenants/{id}", verb="GET", confidence=Confidence.HIGH):
    return RESTCall(
        from_service=service,
        from_resource=res,
        from_handler=f"{res}.handle",
        http_method=verb,
        target_path=path,
        source_file=f"{res}.java",
        confidence=confidence,
    )


def two_tenant_services():
    a = Service(name="svc-a", root_path="/a", rest_resources=[
        resource("TenantApiV1", "GET", "/tenants/{id}"),
        resource("ReportApi", "GET", "/reports"),
    ])
    b = Service(name="svc-b", root_path="/b", rest_resources=[resource("TenantLookup", "GET", "/tenants/{id}")])
    c = Service(name="svc-c", root_path="/c", rest_resources=[resource("BillingApi", "GET", "/billing")])
    return a, b, c


def test_unique_same_service_match():
    a, b, c = two_tenant_services()
    resolved = resolve_call(call("svc-a", "ReportApi"), build_path_index([a]), build_path_index([a, b, c]))
    assert resolved.resolution_scope == ResolutionScope.SAME_SERVICE
    assert (resolved.target_service, resolved.target_resource) == ("svc-a", "TenantApiV1")


def test_ambiguous_global_match_stays_unresolved():
    a, b, c = two_tenant_services()
    resolved = resolve_call(call("svc-c", "BillingApi"), build_path_index([c]), build_path_index([a, b, c]))
    assert resolved.resolution_scope == ResolutionScope.UNRESOLVED
    assert resolved.target_service is None
    assert resolved.resolution_evidence == "ambiguous global match (2 candidates)"


def test_unique_global_match():
    a, b, c = two_tenant_services()
    resolved = resolve_call(call("svc-c", "BillingApi", path="/reports"), build_path_index([c]), build_path_index([a, b, c]))
    assert resolved.resolution_scope == ResolutionScope.CROSS_SERVICE
    assert (resolved.target_service, resolved.target_resource) == ("svc-a", "ReportApi")


def test_missing_verb_or_path():
    a, b, c = two_tenant_services()
    idx = build_path_index([a, b, c])
    assert resolve_call(call("svc-c", "BillingApi", path=""), idx, idx).resolution_evidence == "no literal target path"
    assert resolve_call(call("svc-c", "BillingApi", verb=None), idx, idx).resolution_evidence == "no HTTP verb detected"


def test_cross_service_can_be_disabled():
    a, b, c = two_tenant_services()
    resolved = resolve_call(call("svc-c", "BillingApi", path="/reports"), build_path_index([c]),
                            build_path_index([a, b, c]), allow_cross_service=False)
    assert resolved.resolution_scope == ResolutionScope.UNRESOLVED
    assert resolved.resolution_evidence == "no matching resource"


def test_index_deduplicates_targets():
    res = resource("TenantApiV1", "GET", "/tenants/{id}")
    res.methods.append(res.methods[0].model_copy(update={"handler": "TenantApiV1.other"}))
    svc = Service(name="svc-a", root_path="/a", rest_resources=[res])
    assert build_path_index([svc]) == {("GET", "/tenants/{id}"): [("svc-a", "TenantApiV1")]}


def test_link_fills_inbound_and_outbound(monkeypatch):
    monkeypatch.setattr(settings, "CROSS_SERVICE_LINKING", True)
    a, b, c = two_tenant_services()
    a.rest_calls = [call("svc-a", "ReportApi")]
    c.rest_calls = [call("svc-c", "BillingApi"), call("svc-c", "BillingApi", path="/reports")]

    link_calls_to_resources([a, b, c])

    tenant = a.find_resource("TenantApiV1")
    report = a.find_resource("ReportApi")
    billing = c.find_resource("BillingApi")
    assert [x.from_resource for x in tenant.inbound_calls] == ["ReportApi"]
    assert [x.from_resource for x in report.inbound_calls] == ["BillingApi"]
    assert len(billing.outbound_calls) == 2
    assert [x.resolution_scope for x in c.rest_calls] == [ResolutionScope.CROSS_SERVICE, ResolutionScope.UNRESOLVED]
    assert b.find_resource("TenantLookup").inbound_calls == []

    # relinking does not duplicate
    link_calls_to_resources([a, b, c])
    assert len(billing.outbound_calls) == 2


def test_path_fragment_is_not_normalized_onto_a_resource():
    a, b, c = two_tenant_services()
    idx = build_path_index([a, b, c])
    resolved = resolve_call(call("svc-a", "ReportApi", path="/reports/"), build_path_index([a]), idx)
    assert resolved.resolution_scope == ResolutionScope.UNRESOLVED
    assert resolved.target_resource is None
    assert resolved.resolution_evidence == "no matching resource"
