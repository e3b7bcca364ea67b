import json

import pytest

from jz.cli import main

from java_trees import REPORT_API, TENANT_API, make_war


def test_scan_prints_markdown(tmp_path, capsys):
    root = make_war(tmp_path / "war", {"TenantApiV1.java": TENANT_API})
    assert main(["scan", str(root)]) == 0
    assert "# System Overview" in capsys.readouterr().out


def test_report_json_to_file(tmp_path):
    root = make_war(tmp_path / "war", {"TenantApiV1.java": TENANT_API, "ReportApi.java": REPORT_API})
    out = tmp_path / "out" / "report.json"
    assert main(["report", "json", str(root), "--service", "tenant-api", "--output", str(out)]) == 0
    data = json.loads(out.read_text())
    assert data["services"][0]["name"] == "tenant-api"
    assert data["services"][0]["rest_resources"][1]["base_path"] == "/tenants"


def test_flow_extract_json(tmp_path, capsys):
    root = make_war(tmp_path / "war", {"TenantApiV1.java": TENANT_API})
    assert main(["flow", "extract", str(root), "--resource", "TenantApiV1", "--format", "json"]) == 0
    flows = json.loads(capsys.readouterr().out)
    assert flows[0]["entry_point"] == "GET /tenants/{id}"


def test_flow_diff_markdown(tmp_path, capsys):
    root = make_war(tmp_path / "war", {"TenantApiV1.java": TENANT_API})
    assert main(["flow", "diff", str(root), str(root), "--resource", "TenantApiV1"]) == 0
    assert "Status: **UNCHANGED**" in capsys.readouterr().out


def test_missing_inputs_exit_1(tmp_path, capsys):
    assert main(["scan", str(tmp_path / "absent")]) == 1
    assert "Error: directory" in capsys.readouterr().err

    root = make_war(tmp_path / "war", {"TenantApiV1.java": TENANT_API})
    assert main(["report", "markdown", str(root), "--service", "nope"]) == 1
    assert main(["flow", "extract", str(root), "--resource", "Nope"]) == 1
    assert "resource 'Nope' not found" in capsys.readouterr().err


def test_report_mermaid(tmp_path, capsys):
    root = make_war(tmp_path / "war", {"TenantApiV1.java": TENANT_API})
    assert main(["report", "mermaid", str(root), "--service", "tenant-api"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("graph TD\n")
    assert 'tenant_api["tenant-api (WAR)"]' in out


def test_flow_extract_mermaid_and_all(tmp_path, capsys):
    root = make_war(tmp_path / "war", {"TenantApiV1.java": TENANT_API, "ReportApi.java": REPORT_API})
    assert main(["flow", "extract", str(root), "--resource", "ReportApi", "--format", "mermaid", "--compact"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("graph TD\n")
    assert '\t\tF0_S1["Call: GET /tenants/{id}"]' in out

    assert main(["flow", "extract", str(root), "--resource", "ReportApi", "--format", "all"]) == 0
    markdown, mermaid = capsys.readouterr().out.split("\n\n---\n\n")
    assert markdown.startswith("# Execution Flow: ReportApi")
    assert mermaid.startswith("graph TD\n")


def test_flow_diff_rejects_mermaid(tmp_path):
    root = make_war(tmp_path / "war", {"TenantApiV1.java": TENANT_API})
    with pytest.raises(SystemExit):
        main(["flow", "diff", str(root), str(root), "--resource", "TenantApiV1", "--format", "mermaid"])
