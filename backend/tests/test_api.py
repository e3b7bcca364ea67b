from fastapi.testclient import TestClient
from jz.main import app

from java_trees import REPORT_API, TENANT_API, make_war


client = TestClient(app)


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_analyze_and_metrics(tmp_path):
    root = make_war(tmp_path / "war", {"TenantApiV1.java": TENANT_API, "ReportApi.java": REPORT_API})

    r = client.post("/analyze", json={"root": str(root)})
    assert r.status_code == 200, r.text
    j = r.json()
    assert [s["name"] for s in j["services"]] == ["tenant-api"]
    assert j["diagnostic"]["has_liberty_war"] is True
    assert j["services"][0]["rest_calls"][0]["resolution_scope"] == "same-service"

    m = client.get("/metrics").json()
    assert m["detectors"]["entry_points"] == 2
    assert m["resolution"]["same_service"] == 1

    r2 = client.post("/analyze?format=markdown", json={"root": str(root), "service": "tenant-api"})
    assert r2.status_code == 200
    assert r2.headers["content-type"].startswith("text/markdown")
    assert r2.text.startswith("# System Overview")


def test_analyze_missing_inputs(tmp_path):
    r = client.post("/analyze", json={"root": str(tmp_path / "absent")})
    assert r.status_code == 404
    assert "does not exist" in r.json()["detail"]

    root = make_war(tmp_path / "war", {"TenantApiV1.java": TENANT_API})
    r2 = client.post("/analyze", json={"root": str(root), "service": "nope"})
    assert r2.status_code == 404


def test_flows(tmp_path):
    root = make_war(tmp_path / "war", {"TenantApiV1.java": TENANT_API, "ReportApi.java": REPORT_API})
    r = client.post("/flows", json={"root": str(root), "resource": "ReportApi", "method": "get"})
    assert r.status_code == 200, r.text
    [flow] = r.json()
    assert flow["entry_point"] == "GET /reports"
    assert [s["kind"] for s in flow["steps"]] == ["entry", "outbound", "return"]

    r2 = client.post("/flows", json={"root": str(root), "resource": "Missing"})
    assert r2.status_code == 404

    r3 = client.post("/flows?format=markdown", json={"root": str(root), "resource": "ReportApi"})
    assert r3.text.startswith("# Execution Flow: ReportApi")


def test_flow_diff(tmp_path):
    a = make_war(tmp_path / "a", {"TenantApiV1.java": TENANT_API})
    b = make_war(tmp_path / "b", {"TenantApiV1.java": TENANT_API.replace("return Response.ok(id).build();",
                                                                         "return Response.noContent().build();")})
    r = client.post("/flows/diff", json={"root_a": str(a), "root_b": str(b), "resource": "TenantApiV1"})
    assert r.status_code == 200, r.text
    [diff] = r.json()
    assert diff["status"] == "MODIFIED"
    assert [sd["kind"] for sd in diff["step_diffs"]] == ["unchanged", "modified"]

    r2 = client.post("/flows/diff", json={"root_a": str(a), "root_b": str(tmp_path / "none"), "resource": "TenantApiV1"})
    assert r2.status_code == 404
